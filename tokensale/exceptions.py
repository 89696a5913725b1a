class SaleError(Exception):
    """Base class for every refusal raised by the sale ledger."""

    code = 'SALE_ERROR'
    default_message = 'Token sale operation failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class Unauthorized(SaleError):
    code = 'UNAUTHORIZED'
    default_message = 'Caller is not the sale owner'


class InvalidArgument(SaleError):
    code = 'INVALID_ARGUMENT'
    default_message = 'Invalid argument'


class UnsupportedPurchase(InvalidArgument):
    code = 'UNSUPPORTED_PURCHASE'
    default_message = 'Purchase spans more than two tiers'


class SaleNotActive(SaleError):
    code = 'SALE_NOT_ACTIVE'
    default_message = 'Sale is not active'


class SalePaused(SaleError):
    code = 'SALE_PAUSED'
    default_message = 'Sale is paused'


class BelowMinimum(SaleError):
    code = 'BELOW_MINIMUM'
    default_message = 'Amount below minimum purchase'


class TooEarly(SaleError):
    code = 'TOO_EARLY'
    default_message = 'Locked tokens cannot be released yet'


class NothingLocked(SaleError):
    code = 'NOTHING_LOCKED'
    default_message = 'No locked tokens to release'


class InvalidState(SaleError):
    code = 'INVALID_STATE'
    default_message = 'Invalid sale state'


class TransferFailed(SaleError):
    code = 'TRANSFER_FAILED'
    default_message = 'Token transfer failed'
