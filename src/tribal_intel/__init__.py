"""
Tribal Intel - Tribal Wars world intelligence for Discord

Polls the public data feeds of a Tribal Wars world and turns them into
Discord notifications and on-demand analyses.

Usage as CLI:
    python -m tribal_intel conquest-start
    python -m tribal_intel buildings-analyze 500|500 --hours 48
    python -m tribal_intel kills-top --type attack

Package structure:
    tribal_intel/
    ├── core/           # Settings, logging, HTTP, persistence
    ├── services/       # Feed clients, conquest pipeline, analyses
    ├── commands/       # CLI command implementations
    └── app.py          # Component wiring
"""

__version__ = "1.0.0"
