#!/usr/bin/env python3
"""
NIT Registry CLI - provisioning and inspection.

Commands:
- init     create the data directory and an empty store
- seed     merge registrations from a JSON file (or the demo set)
- lookup   show the registration for an identifier
- list     show every registration
- serve    run the API server
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from lib import config
from lib.errors import StorageUnavailable
from lib.identifiers import IdentificationType
from lib.models import RegisteredEntity
from lib.observability.logging import configure_logging
from lib.registry_store import RegistrationStore, open_store, set_store

log = logging.getLogger(__name__)

# Demo companies from the original provisioning script.
DEMO_SEED = [
    {
        "raw_identifier": "900674335",
        "name": "Seeded Company A",
        "email": "a@example.com",
        "phone": "3000000001",
        "address": "Carrera 1 # 10 - 20",
    },
    {
        "raw_identifier": "900674336",
        "name": "Seeded Company B",
        "email": "b@example.com",
        "phone": "3000000002",
        "address": "Carrera 2 # 20 - 30",
    },
    {
        "raw_identifier": "811033098",
        "name": "Seeded Company C",
        "email": "c@example.com",
        "phone": "3000000003",
        "address": "Calle 3 # 30 - 40",
    },
]


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths, strict=True))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths, strict=True)))


def entities_from_rows(rows: list[dict]) -> list[RegisteredEntity]:
    """
    Build seed records. Rows that already carry an id and registered_at are
    kept as-is (e.g. an exported store); otherwise fresh ones are assigned.
    """
    entities = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"row {i} is not a JSON object")
        if "id" in row and "registered_at" in row:
            entities.append(RegisteredEntity.from_dict(row))
            continue
        entities.append(
            RegisteredEntity.create(
                raw_identifier=row.get("raw_identifier") or row.get("nit", ""),
                identification_type=IdentificationType.parse(
                    row.get("identification_type", IdentificationType.NIT.value)
                ),
                name=row["name"],
                email=row["email"],
                phone=row["phone"],
                address=row["address"],
            )
        )
    return entities


def cmd_init(store: RegistrationStore, args) -> int:
    """Create the store; seeding an empty list writes the file for the json backend."""
    if store.count() == 0:
        store.seed([])
    print(f"Store ready: {store.path} ({store.backend}, {store.count()} registrations)")
    return 0


def cmd_seed(store: RegistrationStore, args) -> int:
    if args.file:
        try:
            rows = json.loads(Path(args.file).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            print(f"Cannot read seed file {args.file}: {e}", file=sys.stderr)
            return 2
        if not isinstance(rows, list):
            print("Seed file must contain a JSON array", file=sys.stderr)
            return 2
    else:
        rows = DEMO_SEED

    try:
        entities = entities_from_rows(rows)
    except (KeyError, ValueError) as e:
        print(f"Invalid seed data: {e}", file=sys.stderr)
        return 2

    try:
        merged = store.seed(entities)
    except ValueError as e:
        print(f"Invalid seed data: {e}", file=sys.stderr)
        return 2
    print(f"Seeded {merged} registrations into {store.path}")
    return 0


def cmd_lookup(store: RegistrationStore, args) -> int:
    entity = store.find_by_identifier(args.identifier)
    if entity is None:
        print(f"Not registered: {args.identifier}", file=sys.stderr)
        return 1
    print(json.dumps(entity.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_list(store: RegistrationStore, args) -> int:
    entities = store.list_all()
    print_header(f"REGISTRATIONS ({len(entities)})")
    if not entities:
        print("No registrations.")
        return 0
    rows = [
        [e.raw_identifier, e.identification_type, e.name[:30], e.email, e.registered_at[:19]]
        for e in entities
    ]
    print_table(["Identifier", "Type", "Name", "Email", "Registered"], rows)
    return 0


def cmd_serve(store: RegistrationStore, args) -> int:
    from api.server import run

    set_store(store)
    run(host=args.host, port=args.port)
    return 0


COMMANDS = {
    "init": cmd_init,
    "seed": cmd_seed,
    "lookup": cmd_lookup,
    "list": cmd_list,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nit-registry", description=__doc__.split("\n")[1])
    p.add_argument(
        "--backend",
        choices=config.STORE_BACKENDS,
        default=None,
        help=f"Store backend (default: ${config.ENV_BACKEND} or json)",
    )
    p.add_argument("--store", default=None, help="Store file path (default: $NIT_REGISTRY_STORE)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init", help="Create the data directory and an empty store")

    s = sub.add_parser("seed", help="Merge registrations by normalized identifier")
    s.add_argument("--file", help="JSON array of registrations (default: demo companies)")

    lk = sub.add_parser("lookup", help="Show the registration for an identifier")
    lk.add_argument("identifier")

    sub.add_parser("list", help="Show every registration")

    sv = sub.add_parser("serve", help="Run the API server")
    sv.add_argument("--host", default=config.HOST)
    sv.add_argument("--port", type=int, default=config.PORT)
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(config.LOG_LEVEL, config.LOG_JSON)

    try:
        store = open_store(args.backend, args.store)
        return COMMANDS[args.cmd](store, args)
    except StorageUnavailable as e:
        log.error("Store unavailable: %s", e)
        print(f"Store unavailable: {e}", file=sys.stderr)
        return 3


if __name__ == "__main__":
    sys.exit(main())
