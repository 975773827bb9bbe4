from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text


class User(BaseModel, Base):
    """A registered identity.

    refresh_token holds the single active refresh token; NULL means no session.
    """
    __tablename__ = "users"
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    refresh_token = Column(Text, nullable=True)

    @property
    def has_session(self) -> bool:
        return self.refresh_token is not None

    def __repr__(self):
        return f"<User {self.username}>"
