from datetime import datetime, timezone
from decimal import Decimal

from models import ProfileUpdate, ServiceCreate, ServiceUpdate
from normalizer import (
    gallery_from_rows,
    profile_to_row,
    round_rating,
    seller_profile_from_rows,
    service_detail_from_rows,
    service_from_row,
    service_to_row,
    to_float,
    to_int,
    user_from_row,
)

CREATED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def card_row(**overrides):
    row = {
        "id": 7,
        "title": "Collana in argento",
        "description": "Argento 925 lavorato a mano.",
        "price": Decimal("450.00"),
        "category": "Gioielleria",
        "image": None,
        "rating": Decimal("4.5"),
        "reviews_count": 8,
        "seller_id": 2,
        "created_at": CREATED,
        "seller_username": "marco_orefice",
        "seller_avatar": "https://example.org/marco.svg",
    }
    row.update(overrides)
    return row


class TestCoercion:
    def test_to_float(self):
        assert to_float(Decimal("450.00")) == 450.0
        assert to_float("12.5") == 12.5
        assert to_float(3) == 3.0
        assert to_float(None) == 0.0
        assert to_float("n/a") == 0.0

    def test_to_int(self):
        assert to_int("7") == 7
        assert to_int("4.0") == 4
        assert to_int(None) == 0
        assert to_int("many") == 0

    def test_round_rating(self):
        assert round_rating(Decimal("4.666")) == 4.7
        assert round_rating(None) == 0.0


class TestServiceCard:
    def test_flat_row_becomes_nested_card(self):
        card = service_from_row(card_row())

        assert card.id == "7"
        assert card.price == 450.0
        assert isinstance(card.price, float)
        assert card.rating == 4.5
        assert card.reviews == 8
        assert card.image == ""
        assert card.seller.username == "marco_orefice"
        assert card.seller.avatar == "https://example.org/marco.svg"
        assert card.seller.rating == 4.5

    def test_string_numbers_are_coerced(self):
        card = service_from_row(card_row(price="2100.00", rating="3.9", reviews_count="3"))

        assert (card.price, card.rating, card.reviews) == (2100.0, 3.9, 3)

    def test_known_seller_overrides_joined_columns(self):
        row = card_row()
        del row["seller_username"], row["seller_avatar"]

        card = service_from_row(row, seller={"username": "luca_mobile", "avatar": None})

        assert card.seller.username == "luca_mobile"
        assert card.seller.avatar is None


class TestDetail:
    def test_gallery_orders_by_position_then_insertion(self):
        rows = [
            {"id": 3, "image_url": "c.jpg", "caption": None, "display_order": 1},
            {"id": 1, "image_url": "a.jpg", "caption": "Dettaglio", "display_order": 2},
            {"id": 2, "image_url": "b.jpg", "caption": None, "display_order": 1},
        ]

        gallery = gallery_from_rows(rows)

        assert [g.url for g in gallery] == ["b.jpg", "c.jpg", "a.jpg"]
        assert [g.order for g in gallery] == [1, 1, 2]
        assert gallery[2].caption == "Dettaglio"

    def test_detail_nests_seller_gallery_and_reviews(self):
        row = card_row(
            seller_name="Marco Benedetti",
            seller_bio="Orafo",
            seller_location="Vicenza",
            seller_phone="+39 0444 123456",
            seller_website=None,
            seller_years_experience=25,
        )
        gallery = [{"id": 1, "image_url": "g.jpg", "caption": None, "display_order": 0}]
        reviews = [{
            "id": 11,
            "rating": 5,
            "comment": "Bellissima",
            "created_at": CREATED,
            "user_username": "giulia_cibo",
            "user_name": "Giulia Sapori",
            "user_avatar": None,
        }]

        detail = service_detail_from_rows(row, gallery, reviews)

        assert detail.id == "7"
        assert detail.reviews_count == 8
        assert detail.seller.id == 2
        assert detail.seller.name == "Marco Benedetti"
        assert detail.seller.years_experience == 25
        assert detail.seller.rating == 4.5
        assert [g.url for g in detail.gallery] == ["g.jpg"]
        assert detail.reviews[0].user.username == "giulia_cibo"
        assert detail.reviews[0].rating == 5


class TestSellerProfile:
    def test_stats_and_services(self):
        user = {"id": 2, "username": "marco_orefice", "avatar": None, "created_at": CREATED}
        stats = {"avg_rating": Decimal("4.3333"), "total_services": 2, "total_reviews": 3}
        services = [card_row(id=8), card_row(id=7)]

        profile = seller_profile_from_rows(user, stats, services)

        assert profile.member_since == CREATED
        assert profile.stats.avg_rating == 4.3
        assert profile.stats.total_services == 2
        assert profile.stats.total_reviews == 3
        assert [s.id for s in profile.services] == ["8", "7"]

    def test_missing_stats_default_to_zero(self):
        user = {"id": 2, "username": "marco_orefice"}

        profile = seller_profile_from_rows(user, None, [])

        assert profile.stats.avg_rating == 0.0
        assert profile.stats.total_services == 0
        assert profile.services == []


def test_user_from_row_never_exposes_password_hash():
    user = user_from_row({
        "id": 1,
        "email": "luca@artigiani.it",
        "username": "luca_mobile",
        "password_hash": "$2b$12$secret",
        "created_at": CREATED,
    })

    assert user.id == "1"
    assert "password_hash" not in user.model_dump()


class TestRequestToRow:
    def test_create_keeps_every_column(self):
        payload = ServiceCreate(title=" Vaso ", description="Ceramica", price=80, category="Ceramica")

        assert service_to_row(payload) == {
            "title": "Vaso",
            "description": "Ceramica",
            "price": 80.0,
            "category": "Ceramica",
            "image": "",
        }

    def test_partial_update_keeps_only_sent_fields(self):
        assert service_to_row(ServiceUpdate(price=95), partial=True) == {"price": 95.0}
        assert service_to_row(ServiceUpdate(title=None, price=95), partial=True) == {"price": 95.0}

    def test_profile_null_clears_optional_fields_only(self):
        payload = ProfileUpdate(username=None, email=None, bio=None, location="Firenze")

        assert profile_to_row(payload) == {"bio": None, "location": "Firenze"}
