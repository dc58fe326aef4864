"""
Feed subsystem for Feed Printer.

- models: feed records, author metadata, cached items
- source: content source interface and the PostgREST client
- cache: the persisted set of handled items
- poll: the polling/deduplication loop
"""

from .cache import *
from .models import *
from .poll import *
from .source import *
