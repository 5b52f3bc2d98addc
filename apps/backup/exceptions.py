from common.exceptions import ClinicError


class ImportFormatError(ClinicError):
    """Backup file is not a bundle; nothing was merged"""
    default_code = 'import_format_error'
    status_code = 400


class InvalidExportRangeError(ClinicError):
    default_code = 'invalid_export_range'
    status_code = 400
