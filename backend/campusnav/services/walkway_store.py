"""
Persistence for walkways and campus features.

Both record kinds are stored as SQLModel tables whose geometry and
properties live in JSON columns, mirroring the GeoJSON documents the
API exchanges.  The functions here convert between the table rows and
the :class:`Walkway` / :class:`Feature` dataclasses used everywhere
else, and assign a uuid hex identifier to records saved without one.

Database failures are wrapped in :class:`StoreError` and never retried;
the API layer turns them into a 503 response.  Multi-record edits
(split, bulk delete, normalisation) go through :func:`replace_walkways`
so they commit or fail as a unit.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import JSON, Column
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, select

from .db import create_db_and_tables, get_session
from .validation import validate_feature, validate_walkway
from .walkways import Feature, Walkway, new_record_id

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the backing database cannot complete an operation."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WalkwayRecord(SQLModel, table=True):
    """One walkway row.

    ``geometry`` holds the GeoJSON ``LineString`` and ``properties`` the
    feature properties without ``_id`` (that is the primary key).
    """

    id: str = Field(primary_key=True)
    name: Optional[str] = Field(default=None, index=True)
    geometry: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    properties: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=_utcnow)


class FeatureRecord(SQLModel, table=True):
    """One building, entrance, room or other point of interest."""

    id: str = Field(primary_key=True)
    kind: Optional[str] = Field(default=None, index=True)
    geometry: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    properties: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=_utcnow)


def init_db() -> None:
    """Create the tables if they do not exist yet."""
    try:
        create_db_and_tables()
    except SQLAlchemyError as exc:
        logger.exception("Failed to initialise database")
        raise StoreError("Failed to initialise database") from exc


@contextmanager
def _session_scope(action: str) -> Iterator[Session]:
    try:
        with get_session() as session:
            yield session
    except SQLAlchemyError as exc:
        logger.exception("Store failure while trying to %s", action)
        raise StoreError(f"Failed to {action}") from exc


def _split_feature(document: Dict[str, Any]) -> Dict[str, Any]:
    props = dict(document.get("properties") or {})
    props.pop("_id", None)
    return props


def _walkway_from_record(record: WalkwayRecord) -> Walkway:
    props = dict(record.properties or {})
    props["_id"] = record.id
    return Walkway.from_feature({"geometry": record.geometry, "properties": props})


def _feature_from_record(record: FeatureRecord) -> Feature:
    props = dict(record.properties or {})
    props["_id"] = record.id
    return Feature.from_feature({"geometry": record.geometry, "properties": props})


def _upsert_walkway(session: Session, walkway: Walkway) -> Walkway:
    walkway = validate_walkway(walkway)
    if not walkway.id:
        walkway = walkway.copy(id=new_record_id())
    document = walkway.to_feature()
    record = session.get(WalkwayRecord, walkway.id)
    if record is None:
        record = WalkwayRecord(id=walkway.id)
    record.name = walkway.name
    record.geometry = document["geometry"]
    record.properties = _split_feature(document)
    record.updated_at = _utcnow()
    session.add(record)
    return walkway


def list_walkways() -> List[Walkway]:
    """Return every stored walkway, unvalidated."""
    with _session_scope("list walkways") as session:
        records = session.exec(select(WalkwayRecord)).all()
        return [_walkway_from_record(r) for r in records]


def get_walkway(walkway_id: str) -> Optional[Walkway]:
    with _session_scope("load walkway") as session:
        record = session.get(WalkwayRecord, walkway_id)
        return _walkway_from_record(record) if record is not None else None


def save_walkway(walkway: Walkway) -> Walkway:
    """Insert or replace a walkway by id.

    The walkway is validated first, so a straight record is always
    stored with its control polygon equal to its geometry.

    Returns:
        The walkway as stored, with its identifier filled in.

    Raises:
        WalkwayValidationError: If the walkway has fewer than two valid points.
        StoreError: If the database write fails.
    """
    with _session_scope("save walkway") as session:
        saved = _upsert_walkway(session, walkway)
        session.commit()
    logger.info("Saved walkway %s", saved.id)
    return saved


def replace_walkways(deleted_ids: Iterable[str], created: Iterable[Walkway]) -> List[Walkway]:
    """Delete some walkways and save others in a single transaction."""
    deleted_ids = list(deleted_ids)
    created = list(created)
    # Validate everything before touching the database.
    created = [validate_walkway(w) for w in created]
    with _session_scope("replace walkways") as session:
        for walkway_id in deleted_ids:
            record = session.get(WalkwayRecord, walkway_id)
            if record is not None:
                session.delete(record)
        saved = [_upsert_walkway(session, w) for w in created]
        session.commit()
    logger.info("Replaced %d walkways with %d new ones", len(deleted_ids), len(saved))
    return saved


def delete_walkway(walkway_id: str) -> bool:
    """Delete a walkway; returns False if no such walkway existed."""
    with _session_scope("delete walkway") as session:
        record = session.get(WalkwayRecord, walkway_id)
        if record is None:
            return False
        session.delete(record)
        session.commit()
    logger.info("Deleted walkway %s", walkway_id)
    return True


def list_features(kind: Optional[str] = None) -> List[Feature]:
    with _session_scope("list features") as session:
        statement = select(FeatureRecord)
        if kind is not None:
            statement = statement.where(FeatureRecord.kind == kind)
        return [_feature_from_record(r) for r in session.exec(statement).all()]


def save_feature(feature: Feature) -> Feature:
    """Insert or replace a feature by id, assigning one when missing.

    Raises:
        WalkwayValidationError: If a point or polygon geometry is unusable.
        StoreError: If the database write fails.
    """
    feature = validate_feature(feature)
    if not feature.id:
        feature.id = new_record_id()
    with _session_scope("save feature") as session:
        record = session.get(FeatureRecord, feature.id)
        if record is None:
            record = FeatureRecord(id=feature.id)
        record.kind = feature.kind
        record.geometry = dict(feature.geometry)
        record.properties = _split_feature(feature.to_feature())
        record.updated_at = _utcnow()
        session.add(record)
        session.commit()
    return feature


def delete_feature(feature_id: str) -> bool:
    with _session_scope("delete feature") as session:
        record = session.get(FeatureRecord, feature_id)
        if record is None:
            return False
        session.delete(record)
        session.commit()
    return True
