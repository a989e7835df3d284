"""Tax category taxonomy and keyword rules."""
import enum
from uuid import UUID

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from agencytax.models.base import BaseModel


class CategoryType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Category(BaseModel):
    """Fixed taxonomy row. The pipeline only reads these."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[CategoryType] = mapped_column(
        Enum(CategoryType, name="category_type"), nullable=False, index=True
    )
    is_deductible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name}, type={self.type.value})>"


class CategoryRule(BaseModel):
    """Keyword pattern mapped to an expense category. Lower position wins."""

    __tablename__ = "category_rules"

    keyword_pattern: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[UUID] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<CategoryRule(id={self.id}, keyword={self.keyword_pattern!r}, position={self.position})>"
