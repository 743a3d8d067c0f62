import logging

from mdloader import config
from mdloader.client.endpoints import EndpointsMixin
from mdloader.client.page_cache import ChapterPageCache
from mdloader.client.rate_limiter import RateLimiter
from mdloader.client.session import SessionManager
from mdloader.client.transport import ApiTransport
from mdloader.domain.models import InitError, TagCatalog
from mdloader.errors import (
    TRANSPORT_STATUS,
    AuthRequiredError,
    MangaDexError,
    ServersUnreachableError,
    TransportError,
)
from mdloader.types import SessionLike, SettingsStore

log = logging.getLogger(__name__)

TRANSPORT_INIT_DETAILS = "Unknown transport error during initialization"
UNKNOWN_INIT_DETAILS = "Unknown error during initialization"


class MangaDexClient(EndpointsMixin):
    """
    Main client object. Composes the rate-limited transport, the session
    manager, the page cache and the resource endpoints.
    """

    def __init__(
        self,
        settings: SettingsStore,
        *,
        http: SessionLike | None = None,
        api_url: str = config.API_URL,
        limiter: RateLimiter | None = None,
        page_cache: ChapterPageCache | None = None,
        request_timeout: tuple[float, float] = config.REQUEST_TIMEOUT,
    ):
        self.settings = settings
        self.transport = ApiTransport(
            http,
            api_url=api_url,
            limiter=limiter,
            request_timeout=request_timeout,
        )
        self.session = SessionManager(self.transport, settings)
        self.page_cache = page_cache if page_cache is not None else ChapterPageCache()
        self.tag_catalog: TagCatalog | None = None
        self.init_errors: list[InitError] = []

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def login(self, username: str, password: str) -> None:
        await self.session.login(username, password)

    async def logout(self) -> None:
        await self.session.logout()

    async def refresh(self) -> None:
        await self.session.refresh()

    async def check_authentication(self) -> bool:
        return await self.session.check_authentication()

    async def init(self) -> list[InitError]:
        """
        Restore the session and load the tag catalog.

        Failures are collected as ``InitError`` records instead of raised, so
        browsing without authentication stays available.
        """
        errors: list[InitError] = []

        try:
            await self.session.restore()
        except AuthRequiredError:
            log.info("Stored session is no longer valid; login required")
        except ServersUnreachableError as exc:
            if isinstance(exc.__cause__, TransportError):
                errors.append(InitError(exc.status, TRANSPORT_INIT_DETAILS))
            else:
                errors.append(
                    InitError(exc.status, "Unable to contact authentication servers. Login required")
                )
        except Exception:
            log.exception("Session restore failed")
            errors.append(InitError(TRANSPORT_STATUS, UNKNOWN_INIT_DETAILS))

        try:
            await self.init_tags()
        except TransportError as exc:
            errors.append(InitError(exc.status, TRANSPORT_INIT_DETAILS))
        except MangaDexError as exc:
            errors.append(InitError(exc.status, "Unable to get taglist"))
        except Exception:
            log.exception("Loading the tag catalog failed")
            errors.append(InitError(TRANSPORT_STATUS, UNKNOWN_INIT_DETAILS))

        for error in errors:
            log.warning("Initialization problem [%s]: %s", error.status, error.details)
        self.init_errors = errors
        return list(errors)

    def close(self) -> None:
        """Release pooled HTTP connections."""
        close = getattr(self.transport.http, "close", None)
        if close is not None:
            close()
