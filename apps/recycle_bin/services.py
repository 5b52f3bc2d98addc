"""
Soft-Delete Subsystem

Every delete path goes through here: the full record is snapshotted into a
trash item and removed from its live collection. A trash item is either
restored (snapshot re-inserted) or purged for good.

    Live -> Trashed -> Live (restore) | Purged
"""

import logging

from django.utils import timezone

from apps.storage.identifiers import make_id
from apps.storage.repositories import UnknownEntityTypeError
from .exceptions import RestoreConflictError, TrashItemNotFoundError, RecordNotFoundError

logger = logging.getLogger(__name__)


ON_CONFLICT_REJECT = 'reject'
ON_CONFLICT_OVERWRITE = 'overwrite'
ON_CONFLICT_RENAME = 'rename'
ON_CONFLICT_CHOICES = [ON_CONFLICT_REJECT, ON_CONFLICT_OVERWRITE, ON_CONFLICT_RENAME]

# Derived or internal collections never go to the trash
NOT_TRASHABLE = {'trash', 'commissions'}


def display_name_for(entity_type: str, record: dict) -> str:
    if entity_type == 'bills':
        walk_in = record.get('walk_in') or {}
        who = record.get('patient_id') or walk_in.get('name') or 'walk-in'
        return f"Invoice {record['id']} ({who})"
    if entity_type == 'rooms' and record.get('number'):
        return f"Room {record['number']}"
    for field in ('name', 'description', 'username'):
        if record.get(field):
            return str(record[field])
    return str(record['id'])


class RecycleBin:

    def __init__(self, workspace):
        self.workspace = workspace
        self.trash = workspace.trash

    def _live_repo(self, entity_type):
        if entity_type in NOT_TRASHABLE:
            raise UnknownEntityTypeError(f"{entity_type} records cannot be deleted")
        return self.workspace.repo(entity_type)

    def _commission_engine(self):
        from apps.billing.services import build_commission_engine
        return build_commission_engine(self.workspace)

    # ==================== Queries ====================

    def list_items(self, entity_type=None) -> list:
        """Trash items, most recently deleted first"""
        items = self.trash.all()
        if entity_type:
            items = [i for i in items if i.get('entity_type') == entity_type]
        return sorted(items, key=lambda i: i.get('deleted_at') or '', reverse=True)

    def get_item(self, trash_id: str) -> dict:
        item = self.trash.get(trash_id)
        if item is None:
            raise TrashItemNotFoundError(f"Trash item {trash_id} not found")
        return item

    # ==================== Transitions ====================

    def soft_delete(self, entity_type: str, record_id: str, display_name=None) -> dict:
        """
        Move a live record to the trash.

        Raises:
            RecordNotFoundError: no live record with this id
        """
        repo = self._live_repo(entity_type)
        record = repo.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No live {entity_type} record {record_id}")

        item = {
            'id': make_id('TRASH'),
            'original_id': record_id,
            'entity_type': entity_type,
            'display_name': display_name or display_name_for(entity_type, record),
            'snapshot': record,
            'deleted_at': timezone.localtime().isoformat(),
        }
        self.trash.put(item)
        repo.remove(record_id)

        if entity_type == 'bills':
            self._commission_engine().clear(record_id)

        logger.info(f"Moved {entity_type}/{record_id} to trash as {item['id']}")
        return item

    def restore(self, trash_id: str, on_conflict: str = ON_CONFLICT_REJECT) -> dict:
        """
        Put a trashed record back into its live collection.

        Args:
            on_conflict: what to do when a live record already uses the id:
                ``reject`` raises, ``overwrite`` replaces the live record,
                ``rename`` restores under ``<id>-R<n>``

        Returns:
            The restored record

        Raises:
            RestoreConflictError: the id is taken and on_conflict is reject
        """
        if on_conflict not in ON_CONFLICT_CHOICES:
            raise ValueError(f"on_conflict must be one of {ON_CONFLICT_CHOICES}")

        item = self.get_item(trash_id)
        entity_type = item['entity_type']
        repo = self._live_repo(entity_type)
        record = item['snapshot']
        original_id = item['original_id']

        if repo.exists(original_id):
            if on_conflict == ON_CONFLICT_REJECT:
                raise RestoreConflictError(
                    f"A live {entity_type} record {original_id} already exists; "
                    f"restore with overwrite or rename",
                    entity_type=entity_type,
                    record_id=original_id,
                )
            if on_conflict == ON_CONFLICT_RENAME:
                record['id'] = self._free_id(repo, original_id)
            logger.warning(
                f"Restore of {entity_type}/{original_id} conflicted; resolved by {on_conflict}"
            )

        repo.put(record)
        self.trash.remove(trash_id)

        if entity_type == 'bills':
            self._commission_engine().evaluate(record)

        logger.info(f"Restored {entity_type}/{record['id']} from {trash_id}")
        return record

    @staticmethod
    def _free_id(repo, original_id: str) -> str:
        n = 1
        while repo.exists(f"{original_id}-R{n}"):
            n += 1
        return f"{original_id}-R{n}"

    def purge(self, trash_id: str) -> dict:
        """Discard a trash item permanently"""
        item = self.trash.remove(trash_id)
        if item is None:
            raise TrashItemNotFoundError(f"Trash item {trash_id} not found")
        logger.info(f"Purged {item['entity_type']}/{item['original_id']} ({trash_id})")
        return item

    def empty_all(self) -> int:
        """Purge every trash item; returns how many were discarded"""
        removed = self.trash.remove_many(self.trash.ids())
        logger.info(f"Recycle bin emptied: {len(removed)} items purged")
        return len(removed)
