from __future__ import annotations

import datetime


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def utc_now_iso() -> str:
    return utc_now().replace(tzinfo=None).isoformat() + "Z"


def make_run_id() -> str:
    return utc_now().strftime("%Y%m%dT%H%M%SZ")
