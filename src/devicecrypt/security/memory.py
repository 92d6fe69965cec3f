"""Best-effort wiping of sensitive buffers.

Python gives no guarantee that a secret lives in exactly one place: ``bytes``
and ``str`` are immutable, slicing copies, and the allocator may leave stale
copies behind. Wiping the mutable buffer a key was delivered in is still worth
doing, but it is not proof of erasure.
"""

import logging
import os

from devicecrypt.core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


def secure_wipe(buffer) -> None:
    """Overwrite ``buffer`` in place with random bytes, then zeros.

    Accepts a ``bytearray`` or a writable, C-contiguous ``memoryview``. ``None``
    and empty buffers are ignored. Immutable ``bytes`` and strided views are
    rejected with ``InvalidArgumentError``.
    """
    if buffer is None or len(buffer) == 0:
        return

    if isinstance(buffer, memoryview):
        if buffer.readonly:
            raise InvalidArgumentError("cannot wipe a read-only buffer")
        if not buffer.c_contiguous:
            raise InvalidArgumentError("cannot wipe a non-contiguous buffer")
        view = buffer.cast("B")
    elif isinstance(buffer, bytearray):
        view = memoryview(buffer)
    else:
        raise InvalidArgumentError(
            f"cannot wipe immutable {type(buffer).__name__}; pass a bytearray"
        )

    size = len(view)
    view[:] = os.urandom(size)
    view[:] = bytes(size)
    view.release()
    logger.debug("wiped %d sensitive bytes", size)
