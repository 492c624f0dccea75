"""Demo data seeding."""

from app.core.security import verify_password
from app.db.seed import seed_demo_data
from app.models.menu import MenuItem
from app.models.restaurant import Desk
from app.models.shop import Shop
from app.models.user import User
from app.services.customization_pricing import customization_price


def test_seed_populates_empty_database(db_session):
    shop = seed_demo_data(db_session, admin_password="seed-secret")

    assert shop.slug == "demo-bistro"
    admin = db_session.query(User).filter(User.shop_id == shop.id).one()
    assert verify_password("seed-secret", admin.password_hash)
    assert db_session.query(Desk).filter(Desk.shop_id == shop.id).count() == 5
    assert db_session.query(MenuItem).filter(MenuItem.shop_id == shop.id).count() == 5


def test_seeded_options_are_priced(db_session):
    seed_demo_data(db_session, admin_password="seed-secret")
    pizza = db_session.query(MenuItem).filter(MenuItem.name == "Margherita Pizza").one()
    cost = customization_price(pizza.customization_options, {"size": "large", "extra_cheese": True})
    assert cost == 4.5


def test_seed_is_skipped_when_shops_exist(db_session, shop):
    assert seed_demo_data(db_session) is None
    assert db_session.query(Shop).count() == 1
