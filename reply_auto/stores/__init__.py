"""
Template store, usage log, and quota policy backends for the suggestion pipeline.

Backends available: in-memory, JSON file, remote JSON pack (templates only),
and Google Sheets.
"""
