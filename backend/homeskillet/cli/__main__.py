# backend/homeskillet/cli/__main__.py
from __future__ import annotations

import argparse
import json

from homeskillet.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m homeskillet.cli", description="Seed a demo owner, viewer and property.")
    p.add_argument("--owner-email", default="owner@demo.local")
    p.add_argument("--viewer-email", default="viewer@demo.local")
    p.add_argument("--password", default="demo-password-1")
    p.add_argument("--no-work", action="store_true", help="skip the sample project and maintenance schedule")
    args = p.parse_args()

    out = seed_demo(
        owner_email=args.owner_email,
        viewer_email=args.viewer_email,
        password=args.password,
        with_work=(not args.no_work),
    )
    print(
        json.dumps(
            {
                "ok": True,
                "owner_email": out.owner_email,
                "viewer_email": out.viewer_email,
                "property_id": out.property_id,
                "project_id": out.project_id,
                "schedule_id": out.schedule_id,
            }
        )
    )


if __name__ == "__main__":
    main()
