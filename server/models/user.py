# server/models/user.py

from sqlalchemy import Column, Integer, String
from . import Base


# -------------------------------
# User Model
# -------------------------------

class User(Base):
    """
    Database model for application accounts.
    The password is only ever stored as the hash produced by UserManager.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    def __repr__(self):
        return f"<User id={self.id} username={self.username!r}>"
