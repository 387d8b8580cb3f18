# arriendo/cli/__main__.py
from __future__ import annotations

import argparse

from arriendo.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m arriendo.cli", description="Seed a local demo dataset.")
    p.add_argument("--owner-email", default="propietario@demo.local")
    p.add_argument("--owner-name", default="Paula Propietaria")
    p.add_argument("--tenant-email", default="inquilino@demo.local")
    p.add_argument("--tenant-name", default="Tomás Inquilino")
    p.add_argument("--owner-plan", default="landlord_pro")
    p.add_argument("--tenant-plan", default="tenant_pro")
    p.add_argument("--no-kyc", action="store_true", help="skip the pre-verified KYC records")
    p.add_argument("--create-tables", action="store_true", help="create tables without alembic (local sqlite)")
    args = p.parse_args()

    out = seed_demo(
        owner_email=args.owner_email,
        owner_name=args.owner_name,
        tenant_email=args.tenant_email,
        tenant_name=args.tenant_name,
        owner_plan=args.owner_plan,
        tenant_plan=args.tenant_plan,
        verify_kyc=(not args.no_kyc),
        create_tables=args.create_tables,
    )
    print(
        {
            "ok": True,
            "owner_id": out.owner_id,
            "tenant_id": out.tenant_id,
            "property_id": out.property_id,
            "owner_plan": out.owner_plan,
            "tenant_plan": out.tenant_plan,
        }
    )


if __name__ == "__main__":
    main()
