"""Tests for the offer ledger: submission, resubmission, and listings."""

import pytest
from sqlalchemy import func, select

from conftest import make_offer
from freightboard.auth.identity import CarrierIdentity
from freightboard.middleware.exceptions import LoadNotPostableError, SelfOfferForbiddenError
from freightboard.models import LoadStatus, Offer, OfferStatus
from freightboard.services import negotiation
from freightboard.services import offers as offer_service


async def _offer_count(db, load_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Offer).where(Offer.load_id == load_id)
    )
    return result.scalar()


@pytest.mark.api
@pytest.mark.asyncio
class TestSubmitOffer:
    async def test_create_then_resubmit_updates_same_row(
        self, client, db_session, posted_load, carrier_a_headers,
    ):
        url = f"/api/loads/{posted_load.id}/offers"
        first = await client.post(
            url, json={"amount": 1700, "message": "Can pick up early"},
            headers=carrier_a_headers,
        )
        assert first.status_code == 201
        created = first.json()
        assert created["status"] == "pending"
        assert created["amount"] == 1700

        second = await client.post(url, json={"amount": 1650}, headers=carrier_a_headers)
        assert second.status_code == 200
        updated = second.json()
        assert updated["id"] == created["id"]
        assert updated["amount"] == 1650
        assert updated["message"] == "Can pick up early"

        assert await _offer_count(db_session, posted_load.id) == 1

    async def test_resubmission_does_not_touch_load(
        self, client, db_session, posted_load, carrier_a_headers,
    ):
        await client.post(
            f"/api/loads/{posted_load.id}/offers",
            json={"amount": 1500}, headers=carrier_a_headers,
        )
        await db_session.refresh(posted_load)
        assert posted_load.status == LoadStatus.POSTED
        assert posted_load.carrier_id is None
        assert posted_load.rate == 1800.0

    @pytest.mark.parametrize("amount", [0, -25, None, "abc"])
    async def test_invalid_amount(self, client, posted_load, carrier_a_headers, amount):
        response = await client.post(
            f"/api/loads/{posted_load.id}/offers",
            json={"amount": amount}, headers=carrier_a_headers,
        )
        assert response.status_code == 422
        if amount != "abc":
            assert response.json()["error"]["code"] == "INVALID_AMOUNT"

    async def test_shipper_cannot_offer(self, client, posted_load, other_shipper_headers):
        response = await client.post(
            f"/api/loads/{posted_load.id}/offers",
            json={"amount": 1500}, headers=other_shipper_headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_driver_cannot_offer(self, client, posted_load, driver_headers):
        response = await client.post(
            f"/api/loads/{posted_load.id}/offers",
            json={"amount": 1500}, headers=driver_headers,
        )
        assert response.status_code == 403

    async def test_missing_load(self, client, carrier_a_headers):
        response = await client.post(
            "/api/loads/does-not-exist/offers",
            json={"amount": 1500}, headers=carrier_a_headers,
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "LOAD_NOT_FOUND"

    async def test_assigned_load_not_postable(self, client, assigned_load, carrier_b_headers):
        response = await client.post(
            f"/api/loads/{assigned_load.id}/offers",
            json={"amount": 1500}, headers=carrier_b_headers,
        )
        assert response.status_code == 409
        body = response.json()["error"]
        assert body["code"] == "LOAD_NOT_POSTABLE"
        assert body["message"] == "This load is no longer available for offers"

    async def test_self_offer_forbidden(self, db_session, posted_load):
        impostor = CarrierIdentity(id=posted_load.shipper_id)
        with pytest.raises(SelfOfferForbiddenError):
            await offer_service.submit_offer(db_session, posted_load.id, impostor, 1500)

    async def test_concurrent_insert_folds_into_update(
        self, db_session, posted_load, carrier_a, carrier_a_identity, monkeypatch,
    ):
        """A duplicate insert that trips the unique constraint becomes an update."""
        existing = await make_offer(db_session, posted_load, carrier_a, 1900.0)

        real_find = offer_service._find_offer
        calls = {"n": 0}

        async def find_misses_once(db, load_id, carrier_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await real_find(db, load_id, carrier_id)

        monkeypatch.setattr(offer_service, "_find_offer", find_misses_once)

        offer, created = await offer_service.submit_offer(
            db_session, posted_load.id, carrier_a_identity, 1725.0,
        )
        assert created is False
        assert offer.id == existing.id
        assert offer.amount == 1725.0
        assert offer.status == OfferStatus.PENDING
        assert await _offer_count(db_session, posted_load.id) == 1

    async def test_resubmit_after_acceptance_committed_is_refused(
        self, db_session, posted_load, carrier_a, carrier_a_identity,
        shipper_identity, monkeypatch,
    ):
        """The shipper accepts between the postability check and the resubmit write."""
        offer_a = await make_offer(db_session, posted_load, carrier_a, 500.0)
        real_find = offer_service._find_offer

        async def find_after_acceptance(db, load_id, carrier_id):
            await negotiation.resolve_offer(db, offer_a.id, "accepted", shipper_identity)
            return await real_find(db, load_id, carrier_id)

        monkeypatch.setattr(offer_service, "_find_offer", find_after_acceptance)

        with pytest.raises(LoadNotPostableError):
            await offer_service.submit_offer(
                db_session, posted_load.id, carrier_a_identity, 900.0,
            )

        await db_session.refresh(offer_a)
        assert offer_a.status == OfferStatus.ACCEPTED
        assert offer_a.amount == 500.0
        await db_session.refresh(posted_load)
        assert posted_load.status == LoadStatus.ASSIGNED
        assert posted_load.rate == 500.0

    async def test_new_offer_after_acceptance_committed_is_refused(
        self, db_session, posted_load, carrier_a, carrier_b, carrier_b_identity,
        shipper_identity, monkeypatch,
    ):
        """A fresh insert landing after the sibling sweep must not stay pending."""
        offer_a = await make_offer(db_session, posted_load, carrier_a, 500.0)
        real_find = offer_service._find_offer

        async def find_after_acceptance(db, load_id, carrier_id):
            await negotiation.resolve_offer(db, offer_a.id, "accepted", shipper_identity)
            return await real_find(db, load_id, carrier_id)

        monkeypatch.setattr(offer_service, "_find_offer", find_after_acceptance)

        with pytest.raises(LoadNotPostableError):
            await offer_service.submit_offer(
                db_session, posted_load.id, carrier_b_identity, 450.0,
            )

        result = await db_session.execute(
            select(Offer).where(Offer.load_id == posted_load.id)
            .execution_options(populate_existing=True)
        )
        offers = result.scalars().all()
        assert [(o.carrier_id, o.status) for o in offers] == [
            (carrier_a.id, OfferStatus.ACCEPTED),
        ]


@pytest.mark.api
@pytest.mark.asyncio
class TestListOffers:
    async def test_owner_sees_offers_newest_first(
        self, client, db_session, posted_load, carrier_a, carrier_b, shipper_headers,
    ):
        older = await make_offer(db_session, posted_load, carrier_a, 1700.0, age_minutes=30)
        newer = await make_offer(db_session, posted_load, carrier_b, 1650.0, age_minutes=5)

        response = await client.get(
            f"/api/loads/{posted_load.id}/offers", headers=shipper_headers,
        )
        assert response.status_code == 200
        offers = response.json()
        assert [o["id"] for o in offers] == [newer.id, older.id]
        assert offers[1]["carrier"]["mc_number"] == "MC123456"
        assert offers[1]["carrier"]["company_name"] == "Roadrunner Freight"

    async def test_admin_sees_offers(self, client, db_session, posted_load, carrier_a, admin_headers):
        await make_offer(db_session, posted_load, carrier_a, 1700.0)
        response = await client.get(
            f"/api/loads/{posted_load.id}/offers", headers=admin_headers,
        )
        assert response.status_code == 200
        assert len(response.json()) == 1

    async def test_others_cannot_list(
        self, client, posted_load, carrier_a_headers, other_shipper_headers,
    ):
        for headers in (carrier_a_headers, other_shipper_headers):
            response = await client.get(
                f"/api/loads/{posted_load.id}/offers", headers=headers,
            )
            assert response.status_code == 403

    async def test_my_offers_for_carrier_and_driver(
        self, client, db_session, posted_load, carrier_a, carrier_b,
        carrier_a_headers, driver_headers,
    ):
        mine = await make_offer(db_session, posted_load, carrier_a, 1700.0)
        await make_offer(db_session, posted_load, carrier_b, 1650.0)

        for headers in (carrier_a_headers, driver_headers):
            response = await client.get("/api/offers/mine", headers=headers)
            assert response.status_code == 200
            page = response.json()
            assert page["total"] == 1
            assert page["items"][0]["id"] == mine.id
            assert page["items"][0]["load"]["load_number"] == posted_load.load_number

    async def test_shipper_has_no_offers(self, client, shipper_headers):
        response = await client.get("/api/offers/mine", headers=shipper_headers)
        assert response.status_code == 403
