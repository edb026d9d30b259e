import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint, create_engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

Base = declarative_base()


class Gym(Base):
    __tablename__ = 'gyms'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug = Column(String(100), unique=True, nullable=False, index=True)  # Used in portal URLs
    name = Column(String(255), nullable=False)
    logo_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=func.now())

    members = relationship("Member", back_populates="gym", cascade="all, delete")


class Member(Base):
    __tablename__ = 'members'
    __table_args__ = (
        UniqueConstraint('gym_id', 'email', name='uq_members_gym_email'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    gym_id = Column(String(36), ForeignKey('gyms.id'), nullable=False, index=True)
    email = Column(String(255), nullable=False)  # Lower-cased, trimmed
    full_name = Column(String(255), nullable=True)

    # Portal Access
    portal_pin = Column(Text, nullable=True)  # AES-256 Encrypted, never hashed
    pin_created_at = Column(DateTime(timezone=True), nullable=True)  # First issuance only
    last_pin_sent_at = Column(DateTime(timezone=True), nullable=True)  # Drives rate limiting

    created_at = Column(DateTime(timezone=True), default=func.now())

    gym = relationship("Gym", back_populates="members")


def make_engine(database_url: str):
    if database_url in ('sqlite://', 'sqlite:///:memory:'):
        # One shared connection so every session sees the same in-memory database
        return create_engine(
            database_url,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool
        )
    return create_engine(database_url)


def init_database(engine):
    Base.metadata.create_all(engine)


def make_session_factory(database_url: str, create_tables: bool = False) -> sessionmaker:
    engine = make_engine(database_url)
    if create_tables:
        init_database(engine)
    return sessionmaker(bind=engine)
