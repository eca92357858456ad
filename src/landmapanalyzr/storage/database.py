"""SQLite persistence for plots, leads and points of interest.

Each table stores the full record as a JSON payload next to a few indexed
columns used for filtering and ordering. Records are validated back into
their pydantic models on read, so callers only ever see canonical models.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Optional, Type

from pydantic import AliasChoices, BaseModel

from ..config import Settings, config
from ..models.lead import Lead, LeadStatus, utcnow
from ..models.plot import Plot, PlotStatus, ZoningStage
from ..models.poi import PointOfInterest

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when a record does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class DuplicateRecordError(Exception):
    """Raised when creating a record whose id already exists."""


def canonical_keys(model: Type[BaseModel], data: dict[str, Any]) -> dict[str, Any]:
    """Rename alias keys (e.g. ``totalPrice``) to model field names."""
    aliases = {}
    for name, field in model.model_fields.items():
        alias = field.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    aliases[choice] = name
        elif isinstance(alias, str):
            aliases[alias] = name
    return {aliases.get(key, key): value for key, value in data.items()}


class Database:
    """SQLite database holding the catalog tables.

    Example:
        db = Database()
        plots = PlotRepository(db)
        plots.create(plot)
    """

    def __init__(self, path: Optional[Path] = None, settings: Optional[Settings] = None):
        """Open (and create if needed) the database.

        Args:
            path: Database file. Defaults to settings.db_path
                  (~/.landmapanalyzr/landmap.db)
            settings: Optional Settings instance
        """
        settings = settings or config
        self.path = Path(path or settings.db_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path)

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self.connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS plots (
                    id TEXT PRIMARY KEY,
                    city TEXT,
                    status TEXT,
                    zoning_stage TEXT,
                    total_price INTEGER,
                    size_sqm REAL,
                    is_published INTEGER DEFAULT 1,
                    created_at TEXT,
                    data JSON NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS leads (
                    id TEXT PRIMARY KEY,
                    plot_id TEXT,
                    status TEXT,
                    created_at TEXT,
                    data JSON NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS pois (
                    id TEXT PRIMARY KEY,
                    type TEXT,
                    data JSON NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_plots_city ON plots(city)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_plots_status ON plots(status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_plots_price ON plots(total_price)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_leads_status ON leads(status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_leads_plot ON leads(plot_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_pois_type ON pois(type)")
            conn.commit()


def _dump(model: BaseModel) -> str:
    return json.dumps(model.model_dump(mode="json"))


# =============================================================================
# Plots
# =============================================================================

# Upper bound on ids accepted by a single lookup
MAX_LOOKUP_IDS = 10

PLOT_ORDERING = {
    "newest": "created_at DESC, id",
    "price-asc": "total_price ASC, id",
    "price-desc": "total_price DESC, id",
    "size-asc": "size_sqm ASC, id",
    "size-desc": "size_sqm DESC, id",
}


class PlotRepository:
    """CRUD and bulk status updates for plots."""

    def __init__(self, db: Database):
        self.db = db

    def _row(self, plot: Plot) -> tuple:
        return (
            plot.id,
            plot.city,
            plot.status.value,
            plot.zoning_stage.value,
            plot.total_price,
            plot.size_sqm,
            int(plot.is_published),
            plot.created_at.isoformat() if plot.created_at else None,
            _dump(plot),
        )

    def list(
        self,
        city: Optional[str] = None,
        status: Optional[PlotStatus] = None,
        min_price: Optional[int] = None,
        max_price: Optional[int] = None,
        zoning: Optional[ZoningStage] = None,
        sort: str = "newest",
        limit: Optional[int] = None,
        offset: int = 0,
        published_only: bool = False,
    ) -> list[Plot]:
        """Query plots with filters and pagination.

        Args:
            city: Exact city name
            status: Sale status
            min_price: Minimum total price
            max_price: Maximum total price
            zoning: Zoning stage
            sort: One of "newest", "price-asc", "price-desc", "size-asc", "size-desc"
            limit: Maximum number of results
            offset: Number of results to skip
            published_only: Exclude unpublished plots

        Returns:
            List of matching Plot objects
        """
        if sort not in PLOT_ORDERING:
            raise ValueError(f"Unsupported sort: {sort}")

        conditions = []
        params: list[Any] = []
        if city:
            conditions.append("city = ?")
            params.append(city)
        if status:
            conditions.append("status = ?")
            params.append(PlotStatus(status).value)
        if zoning:
            conditions.append("zoning_stage = ?")
            params.append(ZoningStage(zoning).value)
        if min_price is not None:
            conditions.append("total_price >= ?")
            params.append(min_price)
        if max_price is not None:
            conditions.append("total_price <= ?")
            params.append(max_price)
        if published_only:
            conditions.append("is_published = 1")

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        query = f"SELECT data FROM plots WHERE {where_clause} ORDER BY {PLOT_ORDERING[sort]}"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params.append(offset)

        with self.db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Plot.model_validate(json.loads(row[0])) for row in rows]

    def get(self, plot_id: str) -> Optional[Plot]:
        with self.db.connect() as conn:
            row = conn.execute("SELECT data FROM plots WHERE id = ?", (plot_id,)).fetchone()
        return Plot.model_validate(json.loads(row[0])) if row else None

    def get_many(self, plot_ids: Iterable[str], published_only: bool = False) -> list[Plot]:
        """Fetch several plots by id in one query.

        Duplicates are dropped and only the first MAX_LOOKUP_IDS ids are
        looked up. Unknown ids are skipped.

        Returns:
            Plots in the order their ids were requested
        """
        ids = [i for i in dict.fromkeys(plot_ids) if i][:MAX_LOOKUP_IDS]
        if not ids:
            return []

        placeholders = ", ".join("?" for _ in ids)
        query = f"SELECT id, data FROM plots WHERE id IN ({placeholders})"
        if published_only:
            query += " AND is_published = 1"
        with self.db.connect() as conn:
            rows = dict(conn.execute(query, ids).fetchall())
        return [Plot.model_validate(json.loads(rows[i])) for i in ids if i in rows]

    def create(self, plot: Plot) -> Plot:
        """Insert a new plot, stamping created/updated times when missing.

        Raises:
            DuplicateRecordError: If a plot with the same id exists
        """
        now = utcnow()
        plot = plot.model_copy(update={
            "created_at": plot.created_at or now,
            "updated_at": plot.updated_at or now,
        })
        try:
            with self.db.connect() as conn:
                conn.execute("INSERT INTO plots VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)", self._row(plot))
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"Plot {plot.id} already exists") from e
        logger.info(f"Created plot {plot.id}")
        return plot

    def save_batch(self, plots: Iterable[Plot]) -> int:
        """Insert or replace many plots at once.

        Returns:
            Number of plots saved
        """
        rows = [self._row(p) for p in plots]
        if not rows:
            return 0
        with self.db.connect() as conn:
            conn.executemany("INSERT OR REPLACE INTO plots VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)", rows)
            conn.commit()
        logger.info(f"Saved {len(rows)} plots")
        return len(rows)

    def update(self, plot_id: str, changes: dict[str, Any]) -> Plot:
        """Apply a partial update (snake_case or camelCase keys).

        Raises:
            NotFoundError: If the plot does not exist
        """
        plot = self.get(plot_id)
        if plot is None:
            raise NotFoundError("Plot", plot_id)

        data = plot.model_dump()
        data.update(canonical_keys(Plot, changes))
        data["id"] = plot_id
        data["updated_at"] = utcnow()
        updated = Plot.model_validate(data)

        with self.db.connect() as conn:
            conn.execute("INSERT OR REPLACE INTO plots VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)", self._row(updated))
            conn.commit()
        return updated

    def delete(self, plot_id: str) -> None:
        """Delete a plot.

        Raises:
            NotFoundError: If the plot does not exist
        """
        with self.db.connect() as conn:
            cursor = conn.execute("DELETE FROM plots WHERE id = ?", (plot_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("Plot", plot_id)
        logger.info(f"Deleted plot {plot_id}")

    def bulk_update_status(self, plot_ids: Iterable[str], status: PlotStatus) -> int:
        """Set the status of many plots; unknown ids are skipped.

        Returns:
            Number of plots updated
        """
        status = PlotStatus(status)
        updated = 0
        for plot_id in dict.fromkeys(plot_ids):
            try:
                self.update(plot_id, {"status": status})
                updated += 1
            except NotFoundError:
                logger.debug(f"Skipping unknown plot {plot_id} in bulk update")
        logger.info(f"Bulk-updated {updated} plots to {status.value}")
        return updated

    def count(self) -> int:
        with self.db.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM plots").fetchone()[0]


# =============================================================================
# Leads
# =============================================================================


class LeadRepository:
    """Persistence for leads, newest first."""

    def __init__(self, db: Database):
        self.db = db

    def _row(self, lead: Lead) -> tuple:
        return (lead.id, lead.plot_id, lead.status.value, lead.created_at.isoformat(), _dump(lead))

    def list(
        self,
        status: Optional[LeadStatus] = None,
        plot_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Lead]:
        conditions = []
        params: list[Any] = []
        if status:
            conditions.append("status = ?")
            params.append(LeadStatus(status).value)
        if plot_id:
            conditions.append("plot_id = ?")
            params.append(plot_id)

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        query = f"SELECT data FROM leads WHERE {where_clause} ORDER BY created_at DESC, id"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params.append(offset)

        with self.db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Lead.model_validate(json.loads(row[0])) for row in rows]

    def get(self, lead_id: str) -> Optional[Lead]:
        with self.db.connect() as conn:
            row = conn.execute("SELECT data FROM leads WHERE id = ?", (lead_id,)).fetchone()
        return Lead.model_validate(json.loads(row[0])) if row else None

    def create(self, lead: Lead) -> Lead:
        try:
            with self.db.connect() as conn:
                conn.execute("INSERT INTO leads VALUES (?, ?, ?, ?, ?)", self._row(lead))
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"Lead {lead.id} already exists") from e
        return lead

    def save(self, lead: Lead) -> Lead:
        """Insert or replace a lead."""
        with self.db.connect() as conn:
            conn.execute("INSERT OR REPLACE INTO leads VALUES (?, ?, ?, ?, ?)", self._row(lead))
            conn.commit()
        return lead

    def delete(self, lead_id: str) -> None:
        with self.db.connect() as conn:
            cursor = conn.execute("DELETE FROM leads WHERE id = ?", (lead_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("Lead", lead_id)

    def bulk_update_status(self, lead_ids: Iterable[str], status: LeadStatus) -> int:
        """Set the status of many leads; unknown ids are skipped.

        Returns:
            Number of leads updated
        """
        status = LeadStatus(status)
        now = utcnow()
        updated = 0
        for lead_id in dict.fromkeys(lead_ids):
            lead = self.get(lead_id)
            if lead is None:
                continue
            self.save(lead.model_copy(update={"status": status, "updated_at": now}))
            updated += 1
        logger.info(f"Bulk-updated {updated} leads to {status.value}")
        return updated

    def status_counts(self) -> dict[str, int]:
        with self.db.connect() as conn:
            rows = conn.execute("SELECT status, COUNT(*) FROM leads GROUP BY status").fetchall()
        counts = {s.value: 0 for s in LeadStatus}
        counts.update(dict(rows))
        return counts


# =============================================================================
# Points of interest
# =============================================================================


class PoiRepository:
    """CRUD for map points of interest."""

    def __init__(self, db: Database):
        self.db = db

    def list(self, type: Optional[str] = None) -> list[PointOfInterest]:
        query = "SELECT data FROM pois"
        params: list[Any] = []
        if type:
            query += " WHERE type = ?"
            params.append(type)
        query += " ORDER BY id"
        with self.db.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [PointOfInterest.model_validate(json.loads(row[0])) for row in rows]

    def get(self, poi_id: str) -> Optional[PointOfInterest]:
        with self.db.connect() as conn:
            row = conn.execute("SELECT data FROM pois WHERE id = ?", (poi_id,)).fetchone()
        return PointOfInterest.model_validate(json.loads(row[0])) if row else None

    def create(self, poi: PointOfInterest) -> PointOfInterest:
        try:
            with self.db.connect() as conn:
                conn.execute("INSERT INTO pois VALUES (?, ?, ?)", (poi.id, poi.type, _dump(poi)))
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"POI {poi.id} already exists") from e
        return poi

    def update(self, poi_id: str, changes: dict[str, Any]) -> PointOfInterest:
        poi = self.get(poi_id)
        if poi is None:
            raise NotFoundError("POI", poi_id)
        updated = PointOfInterest.model_validate({**poi.model_dump(), **changes, "id": poi_id})
        with self.db.connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO pois VALUES (?, ?, ?)",
                (updated.id, updated.type, _dump(updated)),
            )
            conn.commit()
        return updated

    def delete(self, poi_id: str) -> None:
        with self.db.connect() as conn:
            cursor = conn.execute("DELETE FROM pois WHERE id = ?", (poi_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFoundError("POI", poi_id)
