"""
LicitaWatch - Procurement notice ingestion and enrichment.

Polls a government procurement RSS feed, scrapes each notice's detail
page, classifies it by keyword scoring, and stores everything in a
local database.
"""

__version__ = "0.1.0"
__app_name__ = "licitawatch"
