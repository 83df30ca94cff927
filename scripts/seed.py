"""
Seed script: vendors, projects and open material requests.
Run from the repo root: python -m scripts.seed
"""
import asyncio
import sys
import os
import uuid
from datetime import date, datetime, timedelta

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from api.database import AsyncSessionLocal, engine
from api.models.material_request import MaterialRequest, MaterialRequestStatus
from api.models.project import Project
from api.models.vendor import Vendor

# ---------- Fixed UUIDs ----------

VENDOR_FURNITURE_ID = uuid.UUID("e0000000-0000-0000-0000-000000000001")
VENDOR_LIGHTING_ID = uuid.UUID("e0000000-0000-0000-0000-000000000002")
VENDOR_PAINT_ID = uuid.UUID("e0000000-0000-0000-0000-000000000003")
VENDOR_ELECTRO_ID = uuid.UUID("e0000000-0000-0000-0000-000000000004")
VENDOR_WOOD_ID = uuid.UUID("e0000000-0000-0000-0000-000000000005")

SEED_USER = "seed-script"

VENDORS = [
    (VENDOR_FURNITURE_ID, "Furniture World", "Furniture", "vendor@makemyoffice.com",
     "+91 9876500001", 4.8, "Office Workstations & Chairs", "50% Advance"),
    (VENDOR_LIGHTING_ID, "Lighting Fast", "Lighting", "contact@lightingfast.com",
     "+91 9876500002", 4.5, "LED & Architectural Lighting", "100% Against Delivery"),
    (VENDOR_PAINT_ID, "Paint Masters", "Painting", "info@paintmasters.com",
     "+91 9876500003", 4.9, "Interior & Exterior Painting", "30 days Credit"),
    (VENDOR_ELECTRO_ID, "ElectroSource", "Electronics", "b2b@electrosource.com",
     "+91 9876500004", 4.2, "AV & Networking Gear", "Advance Only"),
    (VENDOR_WOOD_ID, "Super Woodworks", "Carpentry", "hello@superwood.com",
     "+91 9876500005", 4.6, "Custom Joinery", "Milestone Based"),
]

# (project id, name, [(material, spec)], days until required, priority)
REQUESTS = [
    ("f0000000-0000-0000-0000-000000000106", "Reception Area Redesign",
     [("Reception Desk", "Custom Oak, 8ft"), ("Visitor Chairs", "Leather, Set of 6")], 3, "High"),
    ("f0000000-0000-0000-0000-000000000104", "Full Floor Fit-out",
     [("LED Downlights", "4-inch, Warm White, 100 units")], 7, "Medium"),
    ("f0000000-0000-0000-0000-000000000108", "HQ Remodel",
     [("Wall Paint", "Azure Blue, 20 gallons"), ("Acoustic Panels", "2x4ft, 50 units")], 10, "Medium"),
    ("f0000000-0000-0000-0000-000000000101", "Pantry Renovation",
     [("Quartz Countertop", "Calacatta Gold, 40 sqft")], 5, "High"),
    ("f0000000-0000-0000-0000-000000000109", "Co-working Space",
     [("Modular Desks", "Set of 20")], 14, "Low"),
    ("f0000000-0000-0000-0000-000000000105", "Conference Room AV",
     [("HDMI Cables", "25ft, 2 pack")], 1, "Low"),
]


async def seed():
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Vendor).where(Vendor.id == VENDOR_FURNITURE_ID))
        if result.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        now = datetime.utcnow()

        # --- Vendors ---
        for vid, name, category, email, phone, rating, specialization, terms in VENDORS:
            db.add(Vendor(
                id=vid,
                name=name,
                category=category,
                email=email,
                phone=phone,
                rating=rating,
                specialization=specialization,
                payment_terms=terms,
                is_active=True,
                created_at=now,
            ))
        await db.flush()
        print(f"  Created {len(VENDORS)} vendors")

        # --- Projects + material requests ---
        # Every request starts at RFQ_PENDING; later states are reached
        # through the API so that each one has its RFQ and bids.
        for project_id, project_name, materials, days, priority in REQUESTS:
            project = Project(
                id=uuid.UUID(project_id),
                name=project_name,
                client_name=None,
                created_at=now,
            )
            db.add(project)
            db.add(MaterialRequest(
                project_id=project.id,
                project_name=project_name,
                materials=[{"name": n, "spec": s} for n, s in materials],
                required_by=date.today() + timedelta(days=days),
                priority=priority,
                status=MaterialRequestStatus.RFQ_PENDING.value,
                requested_by=SEED_USER,
                created_at=now,
                updated_at=now,
            ))
        await db.commit()
        print(f"  Created {len(REQUESTS)} projects with material requests")

    await engine.dispose()
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
