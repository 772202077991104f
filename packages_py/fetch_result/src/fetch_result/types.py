"""
Type definitions for fetch_result.
"""
from typing import Literal, Union

import httpx


# HTTP methods
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# Where a call is sent: a URI, or a fully formed request
Target = Union[str, httpx.URL, httpx.Request]
