"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Ledger (cash)
  3xxx: Scenario / Instrument
  4xxx: Order
  5xxx: Position
  6xxx: Price
  9xxx: System

Every concrete error belongs to one of five families (ValidationError,
StateError, FundsError, DataUnavailableError, NotFoundError). The order
engine converts the rejection families into a typed PlaceOrderResult;
everything else is rendered by the app-level exception handler.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- Families ---

class ValidationError(AppError):
    """Bad input shape (quantity, price, payload fields)."""

    def __init__(self, code: int, message: str, http_status: int = 400) -> None:
        super().__init__(code, message, http_status)


class StateError(AppError):
    """Operation not allowed in the current state of a record."""

    def __init__(self, code: int, message: str, http_status: int = 422) -> None:
        super().__init__(code, message, http_status)


class FundsError(AppError):
    """Insufficient cash or shares."""

    def __init__(self, code: int, message: str, http_status: int = 422) -> None:
        super().__init__(code, message, http_status)


class DataUnavailableError(AppError):
    """Required market data does not exist yet."""

    def __init__(self, code: int, message: str, http_status: int = 422) -> None:
        super().__init__(code, message, http_status)


class NotFoundError(AppError):
    def __init__(self, code: int, message: str, http_status: int = 404) -> None:
        super().__init__(code, message, http_status)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin role required", 403)


# --- 2xxx: Ledger ---

class InsufficientFundsError(FundsError):
    def __init__(self, required: object, available: object) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
        )


class PlayerNotInitializedError(NotFoundError):
    def __init__(self, scenario_id: str, user_id: str) -> None:
        super().__init__(
            2002, f"Player {user_id} has not joined scenario {scenario_id}"
        )


class LedgerConflictError(StateError):
    def __init__(self, detail: str = "Concurrent ledger update, please retry") -> None:
        super().__init__(2003, detail, 409)


# --- 3xxx: Scenario ---

class ScenarioNotFoundError(NotFoundError):
    def __init__(self, scenario_id: str) -> None:
        super().__init__(3001, f"Scenario not found: {scenario_id}")


class ScenarioNotTradableError(StateError):
    def __init__(self, scenario_id: str, detail: str = "") -> None:
        suffix = f" ({detail})" if detail else ""
        super().__init__(3002, f"Scenario is not tradable: {scenario_id}{suffix}")


class InstrumentNotFoundError(NotFoundError):
    def __init__(self, instrument_id: str) -> None:
        super().__init__(3003, f"Instrument not found: {instrument_id}")


class InvalidScenarioTransitionError(StateError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            3004, f"Cannot move scenario from {current} to {target}", 409
        )


class ScenarioLockedError(StateError):
    def __init__(self, detail: str) -> None:
        super().__init__(3005, detail, 409)


class DuplicateSymbolError(ValidationError):
    def __init__(self, symbol: str) -> None:
        super().__init__(3006, f"Symbol already exists in scenario: {symbol}", 409)


class InvalidScenarioWindowError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(3007, f"Invalid scenario window: {detail}")


# --- 4xxx: Order ---

class InvalidQuantityError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid quantity: {detail}")


class InvalidPriceError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Invalid price: {detail}")


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}")


class OrderNotCancellableError(StateError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4006, f"Order {order_id} in status {status} cannot be cancelled")


# --- 5xxx: Position ---

class InsufficientSharesError(FundsError):
    def __init__(self, required: object, held: object) -> None:
        super().__init__(
            5001, f"Insufficient shares: required {required}, held {held}"
        )


# --- 6xxx: Price ---

class NoPriceError(DataUnavailableError):
    def __init__(self, instrument_id: str) -> None:
        super().__init__(6001, f"No price available for instrument {instrument_id}")


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
