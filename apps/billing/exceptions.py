from common.exceptions import ClinicError


class EmptyBasketError(ClinicError):
    """Bill submitted without any line item"""
    default_code = 'empty_basket'
    status_code = 400


class DuplicateInvoiceError(ClinicError):
    """Invoice id already used by another bill; check the numbering settings"""
    default_code = 'duplicate_invoice'
    status_code = 409


class BillNotFoundError(ClinicError):
    default_code = 'bill_not_found'
    status_code = 404


class InvalidPaymentError(ClinicError):
    default_code = 'invalid_payment'
    status_code = 400


class InvalidDiscountError(ClinicError):
    default_code = 'invalid_discount'
    status_code = 400


class MissingIdentificationError(ClinicError):
    """Bill would be left with neither a patient reference nor walk-in details"""
    default_code = 'missing_identification'
    status_code = 400
