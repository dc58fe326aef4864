"""
Printing subsystem for Feed Printer.

- dither: Floyd-Steinberg halftoning of greyscale rasters
- compose: ordered, single-use ESC/POS print jobs
- connection: USB / network transports and the process-wide printer handle
- images: fetch, dither, stage and print remote images
"""

from .compose import *
from .connection import *
from .dither import *
from .images import *
