from riveripam.cli.main import app

app()
