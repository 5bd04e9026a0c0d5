"""
PointKeeper — A Reaction-Driven Points Ledger for Discord
==========================================================
Members earn points by reacting to task posts and spend them by reacting
to reward posts.  Balances live in memory and are written through to a
Discord channel, one bot-authored message per member, so the server itself
is the only durable storage.

Package layout::

    pointkeeper/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Command names, record format, message templates
    ├── engine/
    │   ├── errors.py      # LedgerError hierarchy
    │   ├── records.py     # "<id> - <value>" record codec
    │   ├── catalog.py     # Tasks/Rewards catalog store
    │   ├── ledger.py      # Per-member balance store
    │   └── transactions.py # Earn / Spend against the stores
    ├── services/
    │   ├── record_log.py  # Channel-as-table repository
    │   ├── bootstrap.py   # Backlog replay into the stores
    │   ├── reconciler.py  # Write-through + outcome DMs
    │   ├── messaging.py   # DM delivery, reaction withdrawal
    │   └── points_service.py # Command surface used by the cogs
    └── bot/
        ├── core.py        # Bot subclass, cog loader, bootstrap barrier
        └── cogs/
            ├── reactions.py # Earn/Spend from reaction events
            ├── catalog.py   # Live task/reward registration
            ├── meta.py      # !balance, !help
            └── admin.py     # !reload
"""

__version__ = "0.1.0"
