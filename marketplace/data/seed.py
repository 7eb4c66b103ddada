# marketplace/data/seed.py
from decimal import Decimal

from marketplace.data.database import Base, SessionLocal, engine
from marketplace.data.models import ProductModel, ProductVariantModel, UserModel
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

USERS = [
    {"id": 1, "name": "Campus Admin", "role": "admin"},
    {"id": 2, "name": "Book Corner", "role": "seller"},
    {"id": 3, "name": "Student Buyer", "role": "buyer"},
]

PRODUCTS = [
    {"name": "Scientific Calculator", "price": Decimal("100.00"), "stock": 5},
    {"name": "Lab Gown", "price": Decimal("350.00"), "stock": 10},
    {"name": "Engineering Notebook", "price": Decimal("45.50"), "stock": 40},
]


def seed(db=None):
    own_session = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            return False

        for u in USERS:
            db.add(UserModel(**u))
        db.flush()

        seller_id = next(u["id"] for u in USERS if u["role"] == "seller")
        for p in PRODUCTS:
            db.add(ProductModel(seller_id=seller_id, is_active=True, **p))
        db.flush()

        gown = db.query(ProductModel).filter_by(name="Lab Gown").one()
        db.add(ProductVariantModel(product_id=gown.id, name="Size", value="L", price_adjustment=Decimal("20.00")))

        db.commit()
        logger.info(f"Seeded {len(USERS)} users and {len(PRODUCTS)} products")
        return True
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    seed()
