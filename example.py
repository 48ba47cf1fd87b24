#!/usr/bin/env python3
"""Example usage of the vndb client.

Sessions log in once when they connect.  Every request on a session is
pipelined over the same connection, so it is safe to share one session
between threads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import vndb
from vndb import filters

logging.basicConfig(level=logging.INFO)

# ── Global session (module-level helpers) ────────────────────────────────
vndb.start()
try:
    keyword, stats = vndb.dbstats()
    print("Stats:", stats)

    keyword, page = vndb.get("vn", "basic", filters.f("id = 17"))
    print("VN 17:", page["items"][0]["title"])
finally:
    vndb.stop()

# ── Local session shared between threads ────────────────────────────────
with vndb.Client().open() as session:
    ids = [17, 11, 2002, 7]
    with ThreadPoolExecutor(max_workers=4) as pool:
        pages = pool.map(
            lambda vn_id: vndb.commands.get(session, "vn", "basic", filters.condition("id", "=", vn_id)),
            ids,
        )
        for vn_id, (keyword, page) in zip(ids, pages):
            print(vn_id, "→", page["items"][0]["title"] if page["items"] else keyword)

# ── Authenticated session ───────────────────────────────────────────────
# with vndb.Client().open(vndb.Credentials("user", "password")) as session:
#     vndb.commands.set(session, "vnlist", 17, {"status": 2})
