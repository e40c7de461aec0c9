"""
Audit Log Module

Append-only record of every state-changing call, with super admin endpoints
to list, export, summarize, purge and bulk-delete entries.
"""
