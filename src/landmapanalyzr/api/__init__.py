"""HTTP API for the plot catalog.

Run with:
    uvicorn landmapanalyzr.api.main:app
"""

from .auth import create_access_token, decode_access_token

__all__ = ["create_access_token", "decode_access_token"]
