"""Handlers that fetch, normalise, ingest and query short-position data."""