import enum


class Role(str, enum.Enum):
    """Closed set of roles; there is no hierarchy between them."""
    CANDIDATE = "candidate"
    ADMIN = "admin"
