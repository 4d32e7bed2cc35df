"""
UwU Meter — A Keyword Counter Bot for Discord
==============================================
Counts every message containing a keyword (``uwu`` by default), keeps a
per-member tally, and answers a handful of slash commands about it.

Package layout::

    uwumeter/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Storage keys, command names, reply texts
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # bot_state key/value table
    ├── engine/
    │   ├── events.py      # MessageEvent / CommandInvocation + keyword match
    │   └── scores.py      # ScoreStore + ScoreSnapshot
    ├── services/
    │   ├── persistence.py    # File / database / memory storage backends
    │   ├── score_service.py  # Mutate → snapshot → save
    │   └── commands.py       # Reply builders + dispatch
    └── bot/
        ├── core.py        # Bot subclass, cog loader
        └── cogs/
            ├── counter.py # on_message keyword counting
            └── scores.py  # /uwumeeter, /uwulead, /uwume, /uwuexport, /uwureset
"""

__version__ = "0.1.0"
