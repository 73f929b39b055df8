import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..crud import LinkStore
from ..errors import (
    CodeConflict,
    DuplicateCode,
    GenerationExhausted,
    InvalidCode,
    InvalidTarget,
    NotFound,
    StoreUnavailable,
)
from ..models import Link
from ..validators import decode_code, is_valid_code, is_valid_target_url
from .codes import allocate_code

logger = logging.getLogger(__name__)

# Paths served by the app itself; a link with one of these codes could never be reached
RESERVED_CODES = frozenset({"health", "metrics", "openapi.json"})


class LinkService:
    """Create, read, delete and redirect operations over a ``LinkStore``.

    Validation always runs before the store is touched. Driver failures are
    logged here and reported as ``StoreUnavailable``.
    """

    def __init__(self, store: LinkStore, code_length: Optional[int] = None, code_attempts: Optional[int] = None):
        self.store = store
        self.code_length = settings.CODE_LENGTH if code_length is None else code_length
        self.code_attempts = settings.CODE_ATTEMPTS if code_attempts is None else code_attempts

    async def create_link(self, target_url: Any, code: Any = None) -> Link:
        if not is_valid_target_url(target_url):
            raise InvalidTarget()

        if code is not None and code != "":
            if not is_valid_code(code) or code in RESERVED_CODES:
                raise InvalidCode()
            try:
                if await self.store.exists(code):
                    raise CodeConflict()
                link = await self.store.insert(code, target_url)
            except DuplicateCode:
                # Lost the race against a concurrent create of the same code
                raise CodeConflict()
            except SQLAlchemyError:
                logger.exception("Error creating link")
                raise StoreUnavailable()
        else:
            try:
                code = await allocate_code(self.store, self.code_attempts, self.code_length)
                link = await self.store.insert(code, target_url)
            except DuplicateCode:
                logger.error(f"Generated code {code!r} collided on insert", extra={"code": code})
                raise GenerationExhausted()
            except SQLAlchemyError:
                logger.exception("Error creating link")
                raise StoreUnavailable()

        logger.info(f"Created link {link.code} -> {link.target_url}", extra={"code": link.code})
        return link

    async def get_link(self, code: str) -> Link:
        if not is_valid_code(code):
            raise InvalidCode("Invalid code format")
        try:
            link = await self.store.select_by_code(code)
        except SQLAlchemyError:
            logger.exception("Error fetching link stats")
            raise StoreUnavailable()
        if link is None:
            raise NotFound()
        return link

    async def list_links(self) -> List[Link]:
        try:
            return await self.store.select_all()
        except SQLAlchemyError:
            logger.exception("Error getting links")
            raise StoreUnavailable()

    async def delete_link(self, code: str) -> None:
        if not is_valid_code(code):
            raise InvalidCode("Invalid code format")
        try:
            deleted = await self.store.delete_by_code(code)
        except SQLAlchemyError:
            logger.exception("Error deleting link")
            raise StoreUnavailable()
        if deleted == 0:
            raise NotFound()
        logger.info(f"Deleted link {code}", extra={"code": code})

    async def resolve_redirect(self, raw_code: str) -> str:
        """Record one click for ``raw_code`` and return its target URL.

        ``raw_code`` is the path segment as received, still percent-encoded.
        Undecodable and syntactically invalid codes raise ``InvalidCode``;
        the HTTP layer answers those exactly like ``NotFound``.
        """
        code = decode_code(raw_code)
        if code is None or not is_valid_code(code):
            raise InvalidCode("Invalid short code")

        try:
            link = await self.store.select_by_code(code)
            if link is None:
                raise NotFound("Short link not found")
            target_url = link.target_url

            # The click must be durable before the redirect goes out
            if await self.store.increment_clicks(code) == 0:
                raise NotFound("Short link not found")
        except SQLAlchemyError:
            logger.exception("Redirect error")
            raise StoreUnavailable()

        return target_url
