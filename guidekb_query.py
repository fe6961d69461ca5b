#!/usr/bin/env python3
"""
guidekb_query.py: query entry point
Usage: python3 guidekb_query.py "your question"

Output JSON:
  {"query": "...", "context": "...", "hits": [...], "status": {...}}
"""
import json, os, sys
from pathlib import Path


def load_env():
    """Load .env file into os.environ."""
    env_file = Path(__file__).parent / '.env'
    if env_file.exists():
        for line in env_file.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                k, v = line.split('=', 1)
                os.environ.setdefault(k.strip(), v.strip())


def _service():
    load_env()
    from guidekb import DatasetService, Settings
    return DatasetService.from_settings(Settings.from_env())


def run_query(query: str, top_k: int = None, service=None) -> dict:
    """Rank the corpus for ``query`` and build the context block for the chat model."""
    from guidekb import rank_scored

    svc = service or _service()
    corpus = svc.ensure_loaded()
    k = svc.settings.top_k if top_k is None else top_k
    scored = rank_scored(query, corpus, k)
    entries = [e for _, e in scored]
    return {
        "query": query,
        "context": svc.build_context(entries),
        "hits": [
            {"score": round(s, 4), "question": e.question, "context": e.context, "source": e.source}
            for s, e in scored
        ],
        "status": svc.status(),
    }


def run_status(service=None) -> dict:
    svc = service or _service()
    svc.ensure_loaded()
    return svc.status()


def run_refresh(service=None) -> dict:
    svc = service or _service()
    svc.force_refresh()
    return svc.status()


def parse_args(args: list) -> dict:
    """Flags: --status, --refresh, --knowledge-base [N], --top-k N, --help."""
    opts = {"mode": "query", "top_k": None, "max_entries": 100, "query": ""}
    rest = []
    i = 0
    while i < len(args):
        a = args[i]
        if a in ("--help", "-h"):
            opts["mode"] = "help"
        elif a == "--status":
            opts["mode"] = "status"
        elif a == "--refresh":
            opts["mode"] = "refresh"
        elif a == "--knowledge-base":
            opts["mode"] = "knowledge_base"
            if i + 1 < len(args) and args[i + 1].isdigit():
                opts["max_entries"] = int(args[i + 1])
                i += 1
        elif a == "--top-k":
            if i + 1 >= len(args) or not args[i + 1].isdigit():
                raise ValueError("--top-k needs a positive integer")
            opts["top_k"] = int(args[i + 1])
            i += 1
        elif a.startswith("--"):
            raise ValueError(f"unknown option: {a}")
        else:
            rest.append(a)
        i += 1
    opts["query"] = " ".join(rest).strip()
    if opts["mode"] == "query" and not opts["query"]:
        opts["mode"] = "help"
    return opts


HELP_TEXT = """guidekb: grounded reference context for the guidance assistant

Usage:
  python3 guidekb_query.py "your question"          Ranked context block (JSON)
  python3 guidekb_query.py --top-k 3 "question"     Override number of hits
  python3 guidekb_query.py --knowledge-base [N]     Topic digest of first N entries
  python3 guidekb_query.py --refresh                Clear the cache and reload
  python3 guidekb_query.py --status                 Load status (JSON)
  python3 guidekb_query.py --help                   Show this help

Environment:
  Configure via .env file (see .env.example) or env vars.
  Key settings: GUIDEKB_DATA_PATH, GUIDEKB_OVERRIDES, GUIDEKB_CACHE_TTL_DAYS,
                GUIDEKB_EXPECTED_REMOTE_COUNT, GUIDEKB_PAGE_SIZE
"""


def main(argv=None) -> int:
    try:
        opts = parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as e:
        print(f"error: {e}\n\n{HELP_TEXT}", file=sys.stderr)
        return 2

    mode = opts["mode"]
    if mode == "help":
        print(HELP_TEXT)
        return 0
    if mode == "status":
        print(json.dumps(run_status(), ensure_ascii=False, indent=2))
        return 0
    if mode == "refresh":
        print(json.dumps(run_refresh(), ensure_ascii=False, indent=2))
        return 0
    if mode == "knowledge_base":
        print(_service().knowledge_base(max_entries=opts["max_entries"]))
        return 0

    print(json.dumps(run_query(opts["query"], top_k=opts["top_k"]), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
