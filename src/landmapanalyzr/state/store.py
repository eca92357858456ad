"""Client-local explore state with reducer-style updates.

Favorites and the compare set survive restarts through a small JSON file;
filters and the sort key live in URL query parameters instead (see
``query_params``).
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..analysis.ranker import PlotFilters, SortKey
from ..config import Settings, config

logger = logging.getLogger(__name__)


class ExploreState(BaseModel):
    """Immutable snapshot of what the user is exploring."""

    model_config = ConfigDict(frozen=True)

    favorites: tuple[str, ...] = ()
    compare: tuple[str, ...] = ()
    filters: PlotFilters = Field(default_factory=PlotFilters)
    sort: SortKey = SortKey.RECOMMENDED


# =============================================================================
# Actions
# =============================================================================


class ToggleFavorite(BaseModel):
    model_config = ConfigDict(frozen=True)
    plot_id: str


class ToggleCompare(BaseModel):
    model_config = ConfigDict(frozen=True)
    plot_id: str


class ClearCompare(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetFilters(BaseModel):
    model_config = ConfigDict(frozen=True)
    filters: PlotFilters


class ClearFilters(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetSort(BaseModel):
    model_config = ConfigDict(frozen=True)
    sort: SortKey


Action = Union[ToggleFavorite, ToggleCompare, ClearCompare, SetFilters, ClearFilters, SetSort]


def _toggle(ids: tuple[str, ...], plot_id: str) -> tuple[str, ...]:
    if plot_id in ids:
        return tuple(i for i in ids if i != plot_id)
    return ids + (plot_id,)


def reduce(state: ExploreState, action: Action, compare_limit: int = 3) -> ExploreState:
    """Apply an action and return the next state.

    The input state is never mutated. Adding a plot to a full compare set
    is ignored.

    Args:
        state: Current state
        action: Action to apply
        compare_limit: Maximum size of the compare set

    Returns:
        The next ExploreState (the same object when nothing changed)
    """
    if isinstance(action, ToggleFavorite):
        return state.model_copy(update={"favorites": _toggle(state.favorites, action.plot_id)})

    if isinstance(action, ToggleCompare):
        if action.plot_id not in state.compare and len(state.compare) >= compare_limit:
            logger.debug(f"Compare set full, ignoring {action.plot_id}")
            return state
        return state.model_copy(update={"compare": _toggle(state.compare, action.plot_id)})

    if isinstance(action, ClearCompare):
        return state.model_copy(update={"compare": ()}) if state.compare else state

    if isinstance(action, SetFilters):
        return state.model_copy(update={"filters": action.filters})

    if isinstance(action, ClearFilters):
        return state.model_copy(update={"filters": PlotFilters()})

    if isinstance(action, SetSort):
        return state.model_copy(update={"sort": SortKey(action.sort)})

    raise TypeError(f"Unknown action: {type(action).__name__}")


class StateStore:
    """Hold the explore state and persist favorites and the compare set.

    Stores both lists as JSON arrays of plot ids in a single file.

    Example:
        store = StateStore()
        store.dispatch(ToggleFavorite(plot_id="p1"))
        store.dispatch(SetSort(sort=SortKey.PRICE_ASC))
        print(store.state.favorites)
    """

    def __init__(self, path: Optional[Path] = None, settings: Optional[Settings] = None):
        """Initialize store and restore persisted lists.

        Args:
            path: Path to JSON state file. Defaults to settings.state_path
                  (~/.landmapanalyzr/state.json)
            settings: Optional Settings instance (compare set limit)
        """
        self.settings = settings or config
        self.path = Path(path or self.settings.state_path)
        self._state = self.load()

    @property
    def state(self) -> ExploreState:
        return self._state

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> ExploreState:
        """Read favorites and the compare set from disk.

        A missing file yields an empty state; a corrupt one is logged and
        also yields an empty state.
        """
        if not self.path.exists():
            return ExploreState()

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load state from {self.path}: {e}")
            return ExploreState()

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed state file {self.path}")
            return ExploreState()

        def ids(key: str) -> tuple[str, ...]:
            value = data.get(key, [])
            if not isinstance(value, list):
                logger.warning(f"Ignoring malformed '{key}' in {self.path}")
                return ()
            # dict.fromkeys keeps first-seen order while dropping duplicates
            return tuple(dict.fromkeys(str(v) for v in value if isinstance(v, (str, int))))

        compare = ids("compare")[: self.settings.compare_limit]
        return ExploreState(favorites=ids("favorites"), compare=compare)

    def save(self) -> None:
        """Write favorites and the compare set to disk."""
        self._ensure_dir()
        payload = {
            "favorites": list(self._state.favorites),
            "compare": list(self._state.compare),
        }
        try:
            with open(self.path, "w") as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to save state: {e}")
            raise

    def dispatch(self, action: Action) -> ExploreState:
        """Apply an action, persisting when favorites or compare changed."""
        previous = self._state
        self._state = reduce(previous, action, compare_limit=self.settings.compare_limit)
        if (
            self._state.favorites != previous.favorites
            or self._state.compare != previous.compare
        ):
            self.save()
        return self._state

    def is_favorite(self, plot_id: str) -> bool:
        return plot_id in self._state.favorites

    def is_comparing(self, plot_id: str) -> bool:
        return plot_id in self._state.compare
