from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class Salt(Base):
    __tablename__ = "salts"
    id = Column(Integer, primary_key=True)
    salt = Column(Text, nullable=False)   # deployment-wide salt component, uppercase hex

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(Text, nullable=False)      # login name and per-user salt part, stored as given
    password = Column(Text, nullable=False)   # uppercase hex PBKDF2 output, never plaintext
