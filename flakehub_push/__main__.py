"""Allow ``python -m flakehub_push``."""

from __future__ import annotations

from flakehub_push.cli import main

raise SystemExit(main())
