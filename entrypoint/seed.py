#!/usr/bin/env python3
"""Seeding orchestrator.

Runs the individual seed routines (categories + admin account) in a
controlled, idempotent order producing concise one-line logs per seed.

Exit Codes:
  0 = all ok / or already present
  3 = one or more seed steps failed
"""
from __future__ import annotations

import sys

from sqlalchemy.exc import SQLAlchemyError

from digilib.config import ConfigurationError
from digilib.services.auth_service import AuthError


def _run_categories() -> bool:
    from entrypoint import seed_library

    try:
        summary = seed_library.ensure_default_categories()
    except (ConfigurationError, SQLAlchemyError) as exc:
        print(f"[SEED] categories ERROR {exc}", file=sys.stderr)
        return False
    created = ",".join(summary["created"]) or "none"
    print(f"[SEED] categories ok total={summary['total']} created={created}")
    return True


def _run_admin() -> bool:
    from entrypoint import seed_library

    try:
        summary = seed_library.ensure_admin_account()
    except (ConfigurationError, SQLAlchemyError, AuthError) as exc:
        print(f"[SEED] admin ERROR {exc}", file=sys.stderr)
        return False
    if summary.get("skipped"):
        print("[SEED] admin skipped (DIGILIB_ADMIN_EMAIL/DIGILIB_ADMIN_PASSWORD not set)")
        return True
    print(
        f"[SEED] admin ok email={summary['email']} created={'yes' if summary['created'] else 'no'} "
        f"promoted={'yes' if summary['promoted'] else 'no'}"
    )
    return True


def main() -> int:
    ok_categories = _run_categories()
    ok_admin = _run_admin()
    return 0 if (ok_categories and ok_admin) else 3


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
