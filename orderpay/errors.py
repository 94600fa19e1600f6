"""Domain errors.

Hierarchy:
    OrderPayError
    ├── ValidationError            bad input, client-fixable
    ├── AuthError
    │   ├── MissingCredentials     no / malformed Authorization header
    │   └── InvalidCredentials     bad signature, expired, no subject
    ├── DuplicateUser
    ├── InvalidLogin
    ├── LedgerError
    │   ├── OrderNotFound
    │   ├── AlreadyAttached        a different payment ref is already stored
    │   ├── AlreadyResolved        order is terminal; carries the order
    │   └── RefMismatch            event ref != stored ref
    ├── BridgeError                payment processor failure, transient
    └── SignatureError             webhook failed verification
"""


class OrderPayError(Exception):
    pass


class ValidationError(OrderPayError):
    pass


class AuthError(OrderPayError):
    pass


class MissingCredentials(AuthError):
    pass


class InvalidCredentials(AuthError):
    pass


class DuplicateUser(OrderPayError):
    pass


class InvalidLogin(OrderPayError):
    pass


class LedgerError(OrderPayError):
    pass


class OrderNotFound(LedgerError):
    pass


class AlreadyAttached(LedgerError):
    pass


class AlreadyResolved(LedgerError):
    """The order already reached a terminal status.

    Not a failure for webhook processing: the reconciler compares
    ``order.status`` with the outcome it wanted to apply to tell a replay
    from a contradicting event.
    """

    def __init__(self, order):
        super().__init__(f"Order {order.id} is already {order.status.value}")
        self.order = order


class RefMismatch(LedgerError):
    pass


class BridgeError(OrderPayError):
    pass


class SignatureError(OrderPayError):
    pass
