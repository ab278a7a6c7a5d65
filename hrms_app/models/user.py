# hrms_app/models/user.py

from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, db


class User(BaseModel):
    """Operator who uploads import files and receives completion notices."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<User {self.email}>"
