"""Allow ``python -m cscrub``."""

from cscrub.cli import main

raise SystemExit(main())
