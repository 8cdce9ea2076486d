"""
Shared, cross-cutting code for the API.

`core/` should contain small building blocks that multiple features use
(DB wiring, the session-authority client, error envelopes). Keep table
descriptors and SQL building in `gateway/`, and role checks in `auth/`.
"""
