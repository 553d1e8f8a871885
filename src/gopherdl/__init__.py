"""gopherdl core library.

Recursive downloader for the Gopher protocol: fetches menus, parses them into
typed entries and mirrors the referenced documents below an output directory
(``<host>/<selector...>``, with menus stored as ``gophermap``).
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
