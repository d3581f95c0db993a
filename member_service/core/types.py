"""Type aliases for dynamic data structures throughout the application.

This module centralizes type definitions for data that cannot be statically
typed: store filters, document payloads and token claims.
"""

from collections.abc import Mapping
from typing import Any

# Attribute -> expected value filters handed to the document store.
# Query descriptors may only name indexed attributes; scan parameters may
# name any attribute and accept a collection of values meaning "one of".
type QueryDescriptor = Mapping[str, object]
type ScanParams = Mapping[str, object]

# Field-wise update or create payload for a document
type DocumentData = Mapping[str, object]

# Decoded bearer token payload
type Claims = Mapping[str, Any]
