"""
Data access for patients, pharmacists and pharmacies.

Callers receive a repository explicitly; nothing here is a module-level client.
Two implementations share the same interface:

- FileRepository: exported tables (CSV or JSON) in a directory
- SupabaseRepository: the hosted PostgREST API
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import requests

from .config import Settings
from .data_models import Patient, Pharmacist, Pharmacy
from .ingest import TABLE_LOADERS, read_table
from .logger import get_logger


logger = get_logger(__name__)


class RepositoryError(RuntimeError):
    """Fetching records from the backing store failed."""


class RecordNotFoundError(RepositoryError, KeyError):
    def __init__(self, table: str, record_id: str):
        super().__init__(f"No {table} row with id={record_id!r}")
        self.table = table
        self.record_id = record_id

    def __str__(self) -> str:
        return self.args[0]


class MatchingRepository(Protocol):
    def get_patient(self, patient_id: str) -> Patient: ...

    def get_pharmacist(self, pharmacist_id: str) -> Pharmacist: ...

    def list_patients(self) -> List[Patient]: ...

    def list_pharmacists(self) -> List[Pharmacist]: ...

    def list_pharmacies(self) -> List[Pharmacy]: ...


def _find(records: List[Any], table: str, record_id: str) -> Any:
    for record in records:
        if record.id == str(record_id):
            return record
    raise RecordNotFoundError(table, str(record_id))


class FileRepository:
    """Reads ``patients``, ``pharmacists`` and ``pharmacies`` tables from a directory.

    Each table may be a ``.csv`` or ``.json`` file; CSV wins when both exist.
    Tables are loaded on first access and cached for the repository's lifetime.
    """

    SUFFIXES = (".csv", ".json")

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self._cache: Dict[str, List[Any]] = {}

    def _table_path(self, table: str) -> Path:
        for suffix in self.SUFFIXES:
            path = self.data_dir / f"{table}{suffix}"
            if path.exists():
                return path
        raise RepositoryError(f"Missing {table} table in {self.data_dir} (looked for .csv and .json)")

    def _load(self, table: str) -> List[Any]:
        if table not in self._cache:
            path = self._table_path(table)
            logger.debug("Reading %s from %s", table, path)
            self._cache[table] = TABLE_LOADERS[table](read_table(path))
        return self._cache[table]

    def get_patient(self, patient_id: str) -> Patient:
        return _find(self._load("patients"), "patients", patient_id)

    def get_pharmacist(self, pharmacist_id: str) -> Pharmacist:
        return _find(self._load("pharmacists"), "pharmacists", pharmacist_id)

    def list_patients(self) -> List[Patient]:
        return list(self._load("patients"))

    def list_pharmacists(self) -> List[Pharmacist]:
        return list(self._load("pharmacists"))

    def list_pharmacies(self) -> List[Pharmacy]:
        return list(self._load("pharmacies"))


class SupabaseRepository:
    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self.base = supabase_url.rstrip("/") + "/rest/v1"
        self.h = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Accept": "application/json",
        }
        self.session = session or requests.Session()
        self.timeout = timeout

    def _select(self, table: str, params: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        url = f"{self.base}/{table}"
        query = {"select": "*"}
        if params:
            query.update(params)
        try:
            r = self.session.get(url, headers=self.h, params=query, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as exc:
            status = getattr(getattr(exc, "response", None), "status_code", None)
            logger.warning("Supabase select on %s failed (status=%s): %s", table, status, exc)
            raise RepositoryError(f"Failed to fetch {table}: {exc}") from exc

        try:
            rows = r.json()
        except ValueError as exc:
            raise RepositoryError(f"Failed to decode {table} response as JSON") from exc
        if not isinstance(rows, list):
            raise RepositoryError(f"Unexpected {table} payload: expected a list of rows")
        logger.debug("Fetched %d rows from %s", len(rows), table)
        return rows

    def _select_one(self, table: str, record_id: str) -> Dict[str, Any]:
        rows = self._select(table, {"id": f"eq.{record_id}"})
        if not rows:
            raise RecordNotFoundError(table, str(record_id))
        return rows[0]

    def get_patient(self, patient_id: str) -> Patient:
        return Patient.model_validate(self._select_one("patients", patient_id))

    def get_pharmacist(self, pharmacist_id: str) -> Pharmacist:
        return Pharmacist.model_validate(self._select_one("pharmacists", pharmacist_id))

    def list_patients(self) -> List[Patient]:
        return [Patient.model_validate(row) for row in self._select("patients")]

    def list_pharmacists(self) -> List[Pharmacist]:
        return [Pharmacist.model_validate(row) for row in self._select("pharmacists")]

    def list_pharmacies(self) -> List[Pharmacy]:
        return [Pharmacy.model_validate(row) for row in self._select("pharmacies")]


def build_repository(settings: Settings) -> MatchingRepository:
    """Pick the backing store the settings describe."""
    if settings.backend == "supabase":
        return SupabaseRepository(
            settings.supabase_url,
            settings.supabase_service_role_key,
            timeout=settings.request_timeout_seconds,
        )
    return FileRepository(settings.data_dir)
