"""
RosterMatch - player deduplication engine.

Decides whether an incoming player record describes a player we already
know about, and keeps the player table clean when it does.

Main components:
- players.similarity: String similarity kernel (edit distance, Jaro-Winkler)
- players.fields: Per-attribute comparators (name, email, phone, height, ...)
- players.scoring: Scoring profiles and the weighted scorer
- players.dedup: Matcher, dedup-gated creation and player merges
- services.roster_import: Single-row and bulk roster imports for a team
- db: SQLAlchemy models and session management
"""

__version__ = "1.0.0"
