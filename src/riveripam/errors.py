"""
Error hierarchy for riveripam.

All errors raised by the pool model, the cache, the backing-store clients
and the reservation coordinator derive from IPAMError, grouped by how a
caller is expected to react:

    - ValidationError: malformed pool/network input, never retried
    - ConflictError: a name or key is already taken
    - NotFoundError: a referenced network/pool/record is absent
    - PreconditionError: the operation is not allowed in the current state
    - StoreError: any other backing-store failure
"""


class IPAMError(Exception):
    """Base class for all riveripam errors."""


# =============================================================================
# Validation
# =============================================================================


class ValidationError(IPAMError):
    """Pool or network input is malformed or inconsistent."""


class IPNotInPoolError(ValidationError):
    """A last-reserved-ip marker points outside of its pool."""


# =============================================================================
# Conflicts
# =============================================================================


class ConflictError(IPAMError):
    """A name or key collides with an existing one."""


class AlreadyExistsError(ConflictError):
    """A network with the same name already exists."""


class DuplicatePoolError(ConflictError):
    """A pool with the same name already exists in the network."""


class PoolOverlapError(ConflictError):
    """A pool's address range intersects another pool in the network."""


class ResourceAlreadyExistsError(ConflictError):
    """The backing store already holds a record with this key."""


class ResourceConflictError(ConflictError):
    """An update was issued against a stale resource version."""


# =============================================================================
# Not Found
# =============================================================================


class NotFoundError(IPAMError):
    """A referenced network, pool or record does not exist."""


class PoolNotInNetworkError(NotFoundError):
    """A last-reserved-ip marker names a pool missing from the network."""


class ResourceNotFoundError(NotFoundError):
    """The backing store holds no record with this key."""


# =============================================================================
# Preconditions
# =============================================================================


class PreconditionError(IPAMError):
    """The operation is not permitted in the current state."""


class NotEmptyError(PreconditionError):
    """A network still holds pools and cannot be deleted."""


class PoolInUseError(PreconditionError):
    """A pool still has reserved addresses and cannot be removed."""


class PoolExhaustedError(PreconditionError):
    """No free address is left in the candidate pools."""


# =============================================================================
# Store
# =============================================================================


class StoreError(IPAMError):
    """Backing-store failure not covered by the other categories."""
