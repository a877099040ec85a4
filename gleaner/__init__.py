"""
Declarative web scraping.

A scraper is described entirely by configuration: where the listing page is,
which nodes are items, and where each field of an item is found. The
extraction engine turns matching pages into flat records and hands them to a
writer.
"""
