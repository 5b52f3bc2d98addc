"""
Record Store API Client

Client for the remote keyed-record endpoint that mirrors the local cache.
Every entity type is a collection with generic keyed-record semantics:

    GET    /api/records/<entity_type>/        -> list of records
    GET    /api/records/<entity_type>/<id>/   -> record or null
    POST   /api/records/<entity_type>/        -> upsert by "id"
    DELETE /api/records/<entity_type>/<id>/   -> remove by id

Each request is bounded by a short timeout; callers (the sync adapter)
treat any failure as "fall back to the local cache".
"""

import requests
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Any
from django.conf import settings

from .cache_store import dumps

logger = logging.getLogger(__name__)


class RecordStoreAPIError(Exception):
    """Custom exception for record store API errors"""
    def __init__(self, message: str, status_code: int = None, response_data: dict = None):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(self.message)


class PersistenceTimeoutError(RecordStoreAPIError):
    """Remote call exceeded its time bound; never surfaced to users"""


class RecordStoreClient:
    """
    Client for the remote record store

    Handles authentication, request formatting, timeouts and error
    translation for all record store calls.
    """

    def __init__(self, base_url: str, token: str = '', timeout: float = 5.0):
        """
        Initialize the API client

        Args:
            base_url: Root URL of the record store server
            token: DRF auth token (optional)
            timeout: Per-request bound in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.api_url = f"{self.base_url}/api/records"
        self.token = token
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> Optional['RecordStoreClient']:
        """Build a client from settings.RECORD_STORE, or None when no remote is configured"""
        conf = getattr(settings, 'RECORD_STORE', {})
        base_url = conf.get('BASE_URL')
        if not base_url:
            return None
        return cls(
            base_url=base_url,
            token=conf.get('TOKEN', ''),
            timeout=conf.get('TIMEOUT', 5.0),
        )

    def _get_headers(self) -> Dict[str, str]:
        """
        Get headers for API requests

        Returns:
            Dict containing authorization and content-type headers
        """
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if self.token:
            headers['Authorization'] = f'Token {self.token}'
        return headers

    def _handle_response(self, response: requests.Response) -> Any:
        """
        Handle API response and raise appropriate exceptions

        Args:
            response: requests Response object

        Returns:
            Parsed JSON response data

        Raises:
            RecordStoreAPIError: If the API returns an error
        """
        if not response.content:
            # An absent record comes back as an empty body
            data = None
        else:
            try:
                data = response.json(parse_float=Decimal)
            except ValueError:
                data = {'error': 'Invalid JSON response'}

        if response.status_code >= 400:
            error_message = None
            if isinstance(data, dict):
                error_message = data.get('error') or data.get('detail')
            raise RecordStoreAPIError(
                message=error_message or f'API error: {response.status_code}',
                status_code=response.status_code,
                response_data=data if isinstance(data, dict) else {}
            )

        return data

    def _collection_url(self, entity_type: str) -> str:
        return f"{self.api_url}/{entity_type}/"

    def _record_url(self, entity_type: str, record_id: str) -> str:
        return f"{self.api_url}/{entity_type}/{record_id}/"

    def list_records(self, entity_type: str) -> List[Dict[str, Any]]:
        """
        Get every stored record of a collection

        Args:
            entity_type: Collection name (e.g. 'bills')

        Returns:
            List of record dictionaries
        """
        url = self._collection_url(entity_type)

        try:
            response = requests.get(
                url,
                headers=self._get_headers(),
                timeout=self.timeout
            )
            data = self._handle_response(response)

            # Handle paginated response
            if isinstance(data, dict) and 'results' in data:
                return data['results']
            return data if isinstance(data, list) else []

        except requests.Timeout as e:
            raise PersistenceTimeoutError(f"Timed out listing {entity_type}: {e}")
        except requests.RequestException as e:
            logger.error(f"List {entity_type} request failed: {e}")
            raise RecordStoreAPIError(f"Connection error: {str(e)}")

    def get_record(self, entity_type: str, record_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a single record by id

        Returns:
            Record dictionary, or None when the store has no such record
        """
        url = self._record_url(entity_type, record_id)

        try:
            response = requests.get(
                url,
                headers=self._get_headers(),
                timeout=self.timeout
            )
            data = self._handle_response(response)
            return data if isinstance(data, dict) and 'id' in data else None
        except requests.Timeout as e:
            raise PersistenceTimeoutError(f"Timed out reading {entity_type}/{record_id}: {e}")
        except requests.RequestException as e:
            logger.error(f"Get {entity_type}/{record_id} request failed: {e}")
            raise RecordStoreAPIError(f"Connection error: {str(e)}")

    def upsert_record(self, entity_type: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or fully replace a record

        Args:
            entity_type: Collection name
            record: Full record payload; its "id" is the key

        Returns:
            Confirmation containing the id used by the store
        """
        url = self._collection_url(entity_type)

        try:
            response = requests.post(
                url,
                data=dumps(record),
                headers=self._get_headers(),
                timeout=self.timeout
            )
            return self._handle_response(response)
        except requests.Timeout as e:
            raise PersistenceTimeoutError(f"Timed out writing {entity_type}/{record.get('id')}: {e}")
        except requests.RequestException as e:
            logger.error(f"Upsert {entity_type} request failed: {e}")
            raise RecordStoreAPIError(f"Connection error: {str(e)}")

    def delete_record(self, entity_type: str, record_id: str) -> Dict[str, Any]:
        """
        Remove a record by id

        Returns:
            Deletion confirmation
        """
        url = self._record_url(entity_type, record_id)

        try:
            response = requests.delete(
                url,
                headers=self._get_headers(),
                timeout=self.timeout
            )
            return self._handle_response(response)
        except requests.Timeout as e:
            raise PersistenceTimeoutError(f"Timed out deleting {entity_type}/{record_id}: {e}")
        except requests.RequestException as e:
            logger.error(f"Delete {entity_type}/{record_id} request failed: {e}")
            raise RecordStoreAPIError(f"Connection error: {str(e)}")
