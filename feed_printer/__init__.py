"""
Feed Printer package

Turns items from an external content feed into thermal-printer receipts:
- core: config, logging, and the error taxonomy
- printing: dithering, ESC/POS job composition, printer transports
- feed: content source client, persisted item cache, and the polling loop

Run `feedprinter poll` (or `python -m feed_printer poll`) to start the loop.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
