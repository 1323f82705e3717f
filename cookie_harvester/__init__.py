"""Cookie Harvester — capture every cookie a page sets in a real browser.

The request pipeline is split into focused packages:

- ``models`` — pydantic data models shared across layers
- ``browser`` — engine adapter, browser session and cookie extraction
- ``pipeline`` — progress channel, orchestration and SSE encoding
- ``utils`` — logging, caching, URL and error helpers
"""
