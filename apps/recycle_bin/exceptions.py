from common.exceptions import ClinicError


class RestoreConflictError(ClinicError):
    """A live record already uses the trashed record's id"""
    default_code = 'restore_conflict'
    status_code = 409

    def __init__(self, message, entity_type=None, record_id=None):
        super().__init__(message)
        self.entity_type = entity_type
        self.record_id = record_id


class TrashItemNotFoundError(ClinicError):
    default_code = 'trash_item_not_found'
    status_code = 404


class RecordNotFoundError(ClinicError):
    default_code = 'record_not_found'
    status_code = 404
