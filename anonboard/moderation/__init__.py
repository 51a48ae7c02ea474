"""Community moderation: reports, auto-flagging, hiding, and bans.

- ``reports``: idempotent per-pseudonym report ledger with auto-flag
- ``bans``: bulk visibility propagation for banned accounts
- ``state``: moderator/administrator actions on content and accounts
- ``review``: flagged-content queue and account history for moderators
"""
