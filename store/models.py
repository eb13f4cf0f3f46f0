# store/models.py
from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class Prospect(Base):
    __tablename__ = "prospects"

    # insertion order; listings sort on it
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    unique_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"Prospect(unique_id={self.unique_id!r}, name={self.name!r})"
