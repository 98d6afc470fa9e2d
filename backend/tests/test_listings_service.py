from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import List, Mapping, Tuple

import pytest

from backend.app.catalog import CatalogCache, CatalogService, InMemoryKeyValueStore, Product, ProductStatus
from backend.app.entitlements import Account, EntitlementService
from backend.app.feature_gates import FeatureGateError
from backend.app.listings import ListingDraft, ListingService
from backend.app.services.marketplace import LocalPlanSource, LocalProductStore


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: List[Tuple[str, str]] = []

    def notify_listing_failed(self, account_id: str, message: str) -> None:
        self.messages.append((account_id, message))


class BrokenProductStore(LocalProductStore):
    async def create(self, fields: Mapping[str, object]) -> Product:
        raise ConnectionError("write rejected")

    async def delete(self, product_id: str) -> None:
        raise ConnectionError("write rejected")


def owned(product_id: str, owner_id: str, status: ProductStatus = ProductStatus.ACTIVE) -> Product:
    return Product(
        id=product_id,
        name=f"Listing {product_id}",
        owner_id=owner_id,
        owner_name="Owner",
        price_per_day=Decimal("300"),
        status=status,
    )


def build_service(store: LocalProductStore) -> Tuple[ListingService, CatalogService, RecordingNotifier]:
    catalog = CatalogService(store, CatalogCache(InMemoryKeyValueStore()))
    asyncio.run(catalog.load())
    notifier = RecordingNotifier()
    service = ListingService(store, EntitlementService(LocalPlanSource()), catalog, notifier)
    return service, catalog, notifier


@pytest.fixture
def owner() -> Account:
    return Account(id="owner-1", name="Vikram Singh", subscription="starter")


@pytest.fixture
def admin() -> Account:
    return Account(id="admin-1", name="Moderator", privileged=True)


@pytest.fixture
def draft() -> ListingDraft:
    return ListingDraft(name="  DJI Mavic Drone ", category="Electronics", price_per_day=Decimal("899"))


def test_new_listing_starts_pending_review(owner: Account, draft: ListingDraft) -> None:
    service, catalog, _ = build_service(LocalProductStore())

    submission = asyncio.run(service.create_listing(owner, draft))

    assert submission.succeeded
    product = submission.product
    assert product is not None
    assert product.name == "DJI Mavic Drone"
    assert product.owner_id == "owner-1"
    assert product.status == ProductStatus.PENDING_REVIEW
    assert catalog.get(product.id) is not None
    assert product not in catalog.browsable()
    assert service.pending_draft(owner.id) is None


def test_quota_counts_pending_and_inactive_listings(owner: Account, draft: ListingDraft) -> None:
    store = LocalProductStore(
        [
            owned("p1", owner.id),
            owned("p2", owner.id, ProductStatus.PENDING_REVIEW),
            owned("p3", owner.id, ProductStatus.INACTIVE),
        ]
    )
    service, _, _ = build_service(store)

    with pytest.raises(FeatureGateError) as exc:
        asyncio.run(service.create_listing(owner, draft))

    assert exc.value.code == "listing_limit_reached"
    assert exc.value.action == "upgrade_plan"
    assert service.pending_draft(owner.id) == draft
    assert len(asyncio.run(store.fetch_all())) == 3


def test_affordance_reports_usage(owner: Account) -> None:
    service, _, _ = build_service(LocalProductStore([owned("p1", owner.id), owned("p2", owner.id)]))

    evaluation = asyncio.run(service.affordance(owner))

    assert evaluation.allowed is True
    assert evaluation.label == "2 / 3 listings"


def test_unsubscribed_owner_is_sent_to_plan_selection(draft: ListingDraft) -> None:
    service, _, _ = build_service(LocalProductStore())
    account = Account(id="owner-2", name="Meera Nair")

    with pytest.raises(FeatureGateError) as exc:
        asyncio.run(service.create_listing(account, draft))

    assert exc.value.action == "select_plan"
    assert service.pending_draft(account.id) == draft
    service.discard_draft(account.id)
    assert service.pending_draft(account.id) is None


def test_privileged_account_bypasses_quota(admin: Account, draft: ListingDraft) -> None:
    store = LocalProductStore([owned(f"p{i}", admin.id) for i in range(20)])
    service, _, _ = build_service(store)

    submission = asyncio.run(service.create_listing(admin, draft))

    assert submission.succeeded


def test_sink_failure_notifies_and_keeps_draft(owner: Account, draft: ListingDraft) -> None:
    service, _, notifier = build_service(BrokenProductStore())

    submission = asyncio.run(service.create_listing(owner, draft))

    assert submission.succeeded is False
    assert submission.draft == draft
    assert notifier.messages and notifier.messages[0][0] == owner.id
    assert service.pending_draft(owner.id) == draft


def test_owner_edit_resets_rejected_listing_to_review(owner: Account, draft: ListingDraft) -> None:
    rejected = owned("p1", owner.id, ProductStatus.REJECTED).model_copy(
        update={"rejection_reason": "Blurry photos"}
    )
    service, catalog, _ = build_service(LocalProductStore([rejected]))

    submission = asyncio.run(service.update_listing(owner, "p1", draft))

    assert submission.product is not None
    assert submission.product.status == ProductStatus.PENDING_REVIEW
    assert submission.product.rejection_reason is None
    assert catalog.get("p1").name == "DJI Mavic Drone"


def test_admin_edit_keeps_original_owner(admin: Account, draft: ListingDraft) -> None:
    service, _, _ = build_service(LocalProductStore([owned("p1", "owner-1")]))

    submission = asyncio.run(service.update_listing(admin, "p1", draft))

    assert submission.product is not None
    assert submission.product.owner_id == "owner-1"


def test_other_accounts_cannot_edit_or_delete(draft: ListingDraft) -> None:
    service, _, _ = build_service(LocalProductStore([owned("p1", "owner-1")]))
    stranger = Account(id="owner-9", name="Stranger", subscription="pro")

    with pytest.raises(FeatureGateError) as exc:
        asyncio.run(service.update_listing(stranger, "p1", draft))
    assert exc.value.code == "not_listing_owner"

    with pytest.raises(FeatureGateError):
        asyncio.run(service.delete_listing(stranger, "p1"))


def test_unknown_listing_raises_lookup_error(owner: Account, draft: ListingDraft) -> None:
    service, _, _ = build_service(LocalProductStore())

    with pytest.raises(LookupError):
        asyncio.run(service.update_listing(owner, "missing", draft))


def test_delete_removes_listing(owner: Account) -> None:
    store = LocalProductStore([owned("p1", owner.id)])
    service, catalog, _ = build_service(store)

    assert asyncio.run(service.delete_listing(owner, "p1")) is True
    assert catalog.get("p1") is None
    assert asyncio.run(store.fetch_all()) == []


def test_delete_failure_is_reported(owner: Account) -> None:
    service, catalog, notifier = build_service(BrokenProductStore([owned("p1", owner.id)]))

    assert asyncio.run(service.delete_listing(owner, "p1")) is False
    assert catalog.get("p1") is not None
    assert len(notifier.messages) == 1


def test_review_approves_pending_listing(admin: Account) -> None:
    service, catalog, _ = build_service(LocalProductStore([owned("p1", "owner-1", ProductStatus.PENDING_REVIEW)]))

    submission = asyncio.run(service.review_listing(admin, "p1", approve=True))

    assert submission.product is not None
    assert submission.product.status == ProductStatus.ACTIVE
    assert [product.id for product in catalog.browsable()] == ["p1"]


def test_review_rejection_records_reason(admin: Account) -> None:
    service, _, _ = build_service(LocalProductStore([owned("p1", "owner-1", ProductStatus.PENDING_REVIEW)]))

    submission = asyncio.run(service.review_listing(admin, "p1", approve=False, reason="Missing photos"))

    assert submission.product is not None
    assert submission.product.status == ProductStatus.REJECTED
    assert submission.product.rejection_reason == "Missing photos"


def test_review_requires_privilege_and_pending_status(owner: Account, admin: Account) -> None:
    service, _, _ = build_service(LocalProductStore([owned("p1", owner.id)]))

    with pytest.raises(FeatureGateError) as exc:
        asyncio.run(service.review_listing(owner, "p1", approve=True))
    assert exc.value.code == "review_not_permitted"

    with pytest.raises(ValueError):
        asyncio.run(service.review_listing(admin, "p1", approve=True))
