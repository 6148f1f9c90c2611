#!/usr/bin/env python3
"""
Trash Lifecycle Example - CaseDesk Trash

Demonstrates the trash lifecycle against an in-memory SQLite database:
- Moving records to the trash and restoring them
- Listing the trash with days remaining
- Permanently deleting a case together with its actions and documents
- Role checks for purge operations
- Emptying the trash and reading summary counts
"""

from casedesk import Actor, AggregateCounter, TrashAPI, TrashService, create_store
from casedesk.config import CaseDeskConfig
from casedesk.trash import ForbiddenError
from casedesk.trash.entities import Case, CaseAction, CaseDocument, Invoice, Partner


def demonstrate_trash_lifecycle() -> None:
    """Walk through the trash lifecycle."""
    print("🗑️  Trash Lifecycle Example\n")

    config = CaseDeskConfig(environment="development")
    store = create_store("sqlite://")
    store.init_schema()
    service = TrashService(store, config=config)
    counter = AggregateCounter(store, config=config)
    api = TrashAPI(service, counter)

    manager = Actor(id="user-manager", role="manager")
    assistant = Actor(id="user-assistant", role="assistant")

    # 1. Create test data
    print("1️⃣ Creating Test Data:")
    with store.transaction("seed") as tx:
        case = Case(case_number="2026-001", patient_name="Jane Roe")
        invoice = Invoice(invoice_number="INV-001", status="unpaid", total=480.0)
        partner = Partner(name="Allianz Care")
        tx.add_all([case, invoice, partner])
        tx.add_all(
            [
                CaseAction(case_id=case.id, service_name="Consultation"),
                CaseAction(case_id=case.id, service_name="Transport", sort_order=1),
                CaseDocument(case_id=case.id, file_name="passport.pdf"),
            ]
        )
    print(f"  ✓ Created case #{case.case_number} with 2 actions and 1 document")
    print(f"  ✓ Created invoice #{invoice.invoice_number} and partner {partner.name}")
    print(f"  Summary: {api.get_summary_counts(assistant).body()['data']}\n")

    # 2. Soft delete and restore
    print("2️⃣ Soft Delete and Restore:")
    service.soft_delete("partner", partner.id, assistant)
    print(f"  ✓ Assistant moved partner {partner.name} to the trash")
    service.restore("partner", partner.id, assistant)
    print("  ✓ Assistant restored it\n")

    # 3. Trash listing
    print("3️⃣ Trash Listing:")
    service.soft_delete("case", case.id, assistant)
    service.soft_delete("invoice", invoice.id, assistant)
    for item in service.list_trash(assistant):
        print(
            f"  - {item.entity_type.value}: {item.name} ({item.description}), "
            f"{item.days_remaining} days remaining"
        )
    print()

    # 4. Purge permissions
    print("4️⃣ Purge Permissions:")
    try:
        service.purge_one("case", case.id, assistant)
    except ForbiddenError as e:
        print(f"  ✗ Assistant: {e.message}")
    response = api.permanent_delete("case", case.id, manager)
    cascade = response.body()["data"]["cascade_deleted"]
    print(f"  ✓ Manager purged the case: {cascade}\n")

    # 5. Error envelopes
    print("5️⃣ Error Envelopes:")
    response = api.permanent_delete("partner", partner.id, manager)
    print(f"  Active partner -> {response.status_code} {response.body()['error']}")
    response = api.restore("cases", partner.id, manager)
    print(f"  Bad entity type -> {response.status_code} {response.body()['error']}\n")

    # 6. Empty trash
    print("6️⃣ Empty Trash:")
    result = service.empty_trash(manager)
    print(f"  ✓ Purged {result.total_purged} items: {result.purged}")
    print(f"  Summary: {counter.compute_summary().model_dump(by_alias=True)}")

    print("\n✅ Trash lifecycle example completed!")


if __name__ == "__main__":
    demonstrate_trash_lifecycle()
