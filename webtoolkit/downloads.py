from __future__ import annotations

import os
from typing import Mapping

from starlette.responses import FileResponse


def download_static_file(
    path: str | os.PathLike[str],
    display_name: str,
    *,
    headers: Mapping[str, str] | None = None,
) -> FileResponse:
    """Serve a file as a forced download named display_name.

    The disposition is always "attachment" so browsers save the file instead
    of displaying it; display_name is independent of the file name on disk
    and is sent quoted as is: attachment; filename="<display_name>".
    FileResponse takes care of content-length, ETag/Last-Modified and range
    requests. A missing or unreadable file fails the way FileResponse does
    (RuntimeError / OSError while sending), no extra checks are layered on.
    """
    response_headers = {k: v for k, v in (headers or {}).items() if k.lower() != "content-disposition"}
    response_headers["Content-Disposition"] = f'attachment; filename="{display_name}"'
    return FileResponse(path, headers=response_headers)
