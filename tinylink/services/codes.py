import logging

from ..utils import generate_random_code

logger = logging.getLogger(__name__)


async def allocate_code(store, attempts: int = 20, length: int = 6) -> str:
    """Draw random codes until one is free in ``store``.

    After ``attempts`` collisions the last candidate is returned anyway and
    the unique index decides at insert time.
    """
    for _ in range(max(attempts, 1)):
        code = generate_random_code(length)
        if not await store.exists(code):
            return code

    logger.warning(f"All {attempts} generated codes collided, inserting last candidate {code!r}")
    return code
