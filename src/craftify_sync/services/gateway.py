"""Remote gateway over the catalog service and the favorites store."""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar

import httpx

from craftify_sync.adapters.catalog_client import CatalogClient
from craftify_sync.domain.errors import (
    ErrorKind,
    NetworkError,
    RemoteError,
    SyncError,
)
from craftify_sync.domain.recipes import Recipe

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_T = TypeVar("_T")

_ALTERNATE_SUFFIXES = ("", "1", "2", "3")
_RETRYABLE_STATUS = 429
_PERMISSION_STATUSES = {401, 403}
_BAD_DATA_STATUSES = {400, 404, 422}

_logger = logging.getLogger(__name__)


class FavoritesRepository(Protocol):
    """Persistence interface for the remote favorites store."""

    def list_favorite_ids(self, user_id: str) -> set[int]:
        """Return the favorite recipe ids recorded for a user."""

    def set_favorite(self, user_id: str, recipe_id: int, is_favorite: bool) -> None:
        """Record or remove a single favorite."""


@dataclass
class RemoteGateway:
    """Fetches the catalog and syncs favorites with timeouts and retry."""

    catalog_client: CatalogClient
    favorites_repository: FavoritesRepository
    user_id: str
    timeout_seconds: float = 10.0
    retry_attempts: int = 3
    retry_base_delay_seconds: float = 0.5

    async def fetch_catalog(self) -> list[Recipe]:
        """Fetch and parse the full remote catalog."""
        rows = await self._call_with_retry(
            self.catalog_client.fetch_recipes, action="fetch_catalog"
        )
        recipes: list[Recipe] = []
        seen: set[int] = set()
        for row in rows:
            if not isinstance(row, dict):
                _logger.warning(
                    "Skipping non-object catalog record: %s", type(row).__name__
                )
                continue
            recipe = parse_catalog_record(row)
            if recipe is None:
                _logger.warning("Skipping malformed catalog record: %s", row.get("id"))
                continue
            if recipe.id in seen:
                _logger.warning("Skipping duplicate catalog id: %s", recipe.id)
                continue
            seen.add(recipe.id)
            recipes.append(recipe)
        _logger.info("Fetched catalog: records=%s recipes=%s", len(rows), len(recipes))
        return recipes

    async def fetch_favorite_ids(self) -> set[int]:
        """Fetch the favorite ids known to the remote store."""
        return await self._call_with_retry(
            lambda: asyncio.to_thread(
                self.favorites_repository.list_favorite_ids, self.user_id
            ),
            action="fetch_favorites",
        )

    async def push_favorite_change(self, recipe_id: int, is_favorite: bool) -> None:
        """Send one favorite toggle, retrying network failures with backoff."""
        action = f"push_favorite:{recipe_id}"
        try:
            await self._call_with_retry(
                lambda: asyncio.to_thread(
                    self.favorites_repository.set_favorite,
                    self.user_id,
                    recipe_id,
                    is_favorite,
                ),
                action=action,
            )
        except NetworkError as exc:
            raise RemoteError(
                f"{action} failed after {self.retry_attempts} attempts",
                kind=ErrorKind.NETWORK,
            ) from exc
        except RemoteError as exc:
            _logger.error("%s rejected by remote: %s", action, exc)
            raise

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[_T]]", *, action: str
    ) -> _T:
        """Retry network failures with exponential backoff."""
        attempt = 0
        while True:
            try:
                return await self._call(func, action=action)
            except NetworkError as exc:
                attempt += 1
                if attempt >= self.retry_attempts:
                    _logger.error(
                        "Giving up on %s after %s attempts: %s", action, attempt, exc
                    )
                    raise
                delay = self.retry_base_delay_seconds * 2 ** (attempt - 1)
                _logger.warning(
                    "%s failed (attempt %s/%s), retrying in %.2fs: %s",
                    action,
                    attempt,
                    self.retry_attempts,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)

    async def _call(
        self, func: "Callable[[], Awaitable[_T]]", *, action: str
    ) -> _T:
        """Run a remote call under the timeout, translating its failures."""
        try:
            return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
        except SyncError:
            raise
        except TimeoutError as exc:
            raise NetworkError(f"{action} timed out") from exc
        except Exception as exc:
            raise classify_error(exc, action=action) from exc


def classify_error(exc: Exception, *, action: str) -> SyncError:
    """Map a transport or service exception onto the sync error taxonomy."""
    if isinstance(exc, httpx.TransportError | ConnectionError):
        return NetworkError(f"{action} could not reach the server: {exc}")
    status_code = _status_code_from_exception(exc)
    if status_code is None:
        return RemoteError(f"{action} failed: {exc}")
    if status_code == _RETRYABLE_STATUS or status_code >= 500:
        return NetworkError(f"{action} failed with status {status_code}")
    if status_code in _PERMISSION_STATUSES:
        return RemoteError(
            f"{action} was not permitted ({status_code})", ErrorKind.PERMISSIONS
        )
    if status_code in _BAD_DATA_STATUSES:
        return RemoteError(
            f"{action} was rejected ({status_code})", ErrorKind.DATA_CORRUPTION
        )
    return RemoteError(f"{action} failed with status {status_code}")


def _status_code_from_exception(exc: Exception) -> int | None:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def parse_catalog_record(row: dict[str, object]) -> Recipe | None:
    """Parse a raw catalog record, returning None when it is unusable."""
    try:
        name = row["name"]
        image = row["image"]
        ingredients = row["ingredients"]
        output = int(row["output"])
        recipe_id = int(row["id"])
    except (KeyError, TypeError, ValueError):
        return None
    if not isinstance(name, str) or not isinstance(image, str):
        return None
    if not isinstance(ingredients, list):
        return None

    alternates: list[tuple[str, ...]] = []
    alternate_outputs: list[int] = []
    for suffix in _ALTERNATE_SUFFIXES:
        grid = row.get(f"alternateIngredients{suffix}")
        if not isinstance(grid, list):
            continue
        alternates.append(_slots(grid))
        alt_output = row.get(f"alternateOutput{suffix}")
        alternate_outputs.append(
            alt_output if isinstance(alt_output, int) and alt_output > 0 else output
        )

    category = row.get("category")
    try:
        return Recipe(
            id=recipe_id,
            name=name,
            image=image,
            ingredients=_slots(ingredients),
            output=output,
            category=category if isinstance(category, str) else "",
            alternate_ingredients=tuple(alternates),
            alternate_outputs=tuple(alternate_outputs),
            image_remark=_optional_str(row.get("imageremark")),
            remarks=_optional_str(row.get("remarks")),
        )
    except ValueError:
        return None


def _slots(values: list[object]) -> tuple[str, ...]:
    """Normalize grid cells, treating missing cells as empty slots."""
    return tuple(value if isinstance(value, str) else "" for value in values)


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None
