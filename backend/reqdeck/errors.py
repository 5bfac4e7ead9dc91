class ReqdeckError(Exception):
    pass


class InvalidRequestError(ReqdeckError):
    """The request cannot be sent as configured (empty or malformed URL)."""


class TransportError(ReqdeckError):
    """DNS, TLS, timeout or connection failure while talking to the server."""


class RequestCancelledError(ReqdeckError):
    pass


class PersistenceError(ReqdeckError):
    pass


class NotFoundError(ReqdeckError):
    pass
