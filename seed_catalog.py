# seed_catalog.py
from app import models  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.services.batch_executor import Insert
from app.services.catalog_store import CatalogStore

# Sample bus lines
OPERATORS = [
    {"name": "Shwe Mandalar", "verified": True},
    {"name": "Elite Express", "verified": True},
    {"name": "Mandalar Minn", "verified": False},
]

TERMINALS = [
    {"operator": "Shwe Mandalar", "terminalName": "Aung Mingalar", "city": "Yangon",
     "address": "Aung Mingalar Highway Bus Station, Gate 2", "phones": ["09-250 123 456"]},
    {"operator": "Shwe Mandalar", "terminalName": "Kywe Se Kan", "city": "Mandalay",
     "address": "Kywe Se Kan Highway Station", "phones": ["09-402 555 010"]},
    {"operator": "Elite Express", "terminalName": "Aung Mingalar", "city": "Yangon",
     "address": "Aung Mingalar Highway Bus Station, Block C", "phones": ["09-420 111 222", "01-635 711"]},
    {"operator": "Mandalar Minn", "terminalName": None, "city": "Naypyitaw",
     "address": "Myoma Bus Terminal", "phones": []},
]

FACILITIES = [
    {"name": "Asia Royal", "type": "private_hospital", "city": "Yangon",
     "address": "No. 14, Baho Road, Sanchaung", "phones": ["01-538 055"], "verified": True},
    {"name": "Yangon General Hospital", "type": "public_hospital", "city": "Yangon",
     "address": "Bogyoke Aung San Road, Lanmadaw", "phones": ["01-256 112"], "verified": True},
    {"name": "City Care Clinic", "type": "clinic", "city": "Mandalay",
     "address": "78th Street, Chanayethazan", "phones": [], "verified": False},
]

ADVERTISEMENTS = [
    {"title": "Grand Opening", "description": "New branch on Baho Road", "contact": ["09-111 222 333"],
     "address": "Baho Road, Sanchaung", "website": "https://example.com", "enabled": True},
]

if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    store = CatalogStore(SessionLocal)

    operator_ids = {}
    for operator in OPERATORS:
        record = store.operators.add(operator)
        operator_ids[record["name"]] = record["id"]
        print(f"✅ Seeded operator -> {record['name']}")

    ops = [
        Insert("terminals", {"operatorId": operator_ids[t["operator"]],
                             **{k: v for k, v in t.items() if k != "operator"}})
        for t in TERMINALS
    ]
    ops += [Insert("facilities", facility) for facility in FACILITIES]
    ops += [Insert("advertisements", ad) for ad in ADVERTISEMENTS]
    store.commit_batch(ops)
    print(f"✅ Seeded {len(ops)} terminals, facilities and ads")

    store.config.save({"welcomeMessage": "Mingalaba! Find bus lines and hospitals near you."})
    print("🎉 Catalog seeding completed!")
