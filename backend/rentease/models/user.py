"""User model — authentication, profile, and wallet balance."""

from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from rentease.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A marketplace member who can both lend and borrow items.

    ``balance_paise`` is only ever changed by ``rentease.services.ledger`` via
    atomic SQL increments, so an instance loaded earlier in a session may hold
    a stale balance. Read balances through ``ledger.get_balance``.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[str] = mapped_column(String(50), default="user", nullable=False)  # user, admin

    # Wallet
    balance_paise: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_earnings_paise: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"
