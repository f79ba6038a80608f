from sqlalchemy import func

from app.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_ref(self) -> dict:
        return {"id": self.id, "name": self.name, "brand": self.brand}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"
