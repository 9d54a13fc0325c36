"""
SQLAlchemy database models for persistent storage
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
    JSON,
    Enum,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from fantasy_ai.core.database import Base
import enum
import uuid
from datetime import datetime


def _uuid() -> str:
    return str(uuid.uuid4())


class LeagueStatus(str, enum.Enum):
    PRE_DRAFT = "pre_draft"
    DRAFTING = "drafting"
    IN_SEASON = "in_season"
    COMPLETE = "complete"


class ScoringFormat(str, enum.Enum):
    STANDARD = "standard"
    HALF_PPR = "half_ppr"
    PPR = "ppr"
    SUPERFLEX = "superflex"


class LeagueRole(str, enum.Enum):
    OWNER = "owner"
    CO_OWNER = "co_owner"
    MEMBER = "member"


class AnalysisType(str, enum.Enum):
    START_SIT = "start_sit"
    TRADE_ANALYSIS = "trade_analysis"
    WAIVER_WIRE = "waiver_wire"
    LINEUP_OPTIMIZER = "lineup_optimizer"


class NotificationPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    avatar_url = Column(String(500))
    sleeper_user_id = Column(String(50), unique=True, index=True)
    preferences = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    leagues = relationship("UserLeague", back_populates="user", cascade="all, delete-orphan")
    analyses = relationship("AIAnalysis", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )


class League(Base):
    __tablename__ = "leagues"

    id = Column(String(36), primary_key=True, default=_uuid)
    sleeper_league_id = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    season = Column(Integer, nullable=False)
    total_rosters = Column(Integer, nullable=False, default=12)
    scoring_format = Column(Enum(ScoringFormat), default=ScoringFormat.PPR)
    status = Column(Enum(LeagueStatus), default=LeagueStatus.IN_SEASON)
    settings = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = relationship("UserLeague", back_populates="league", cascade="all, delete-orphan")
    analyses = relationship("AIAnalysis", back_populates="league")
    trade_analyses = relationship("TradeAnalysis", back_populates="league")


class UserLeague(Base):
    __tablename__ = "user_leagues"
    __table_args__ = (UniqueConstraint("user_id", "league_id", name="uq_user_league"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    sleeper_roster_id = Column(Integer)
    role = Column(Enum(LeagueRole), default=LeagueRole.MEMBER, nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="leagues")
    league = relationship("League", back_populates="members")


class Player(Base):
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=_uuid)
    sleeper_player_id = Column(String(50), unique=True, index=True, nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    position = Column(String(10), index=True)
    team = Column(String(10))
    age = Column(Integer)
    experience = Column(Integer)
    injury_status = Column(String(50))
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    stats = relationship("PlayerStats", back_populates="player", cascade="all, delete-orphan")


class PlayerStats(Base):
    __tablename__ = "player_stats"
    __table_args__ = (
        UniqueConstraint("player_id", "season", "week", name="uq_player_season_week"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    season = Column(Integer, nullable=False)
    week = Column(Integer, nullable=False)
    stats = Column(JSON, default=dict)
    fantasy_points = Column(Float)
    projected_points = Column(Float)
    created_at = Column(DateTime, default=datetime.utcnow)

    player = relationship("Player", back_populates="stats")


class AIAnalysis(Base):
    __tablename__ = "ai_analyses"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="SET NULL"))
    analysis_type = Column(Enum(AnalysisType), nullable=False, index=True)
    input = Column(JSON, nullable=False)
    output = Column(JSON, nullable=False)
    # "metadata" is reserved on declarative classes
    analysis_metadata = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="analyses")
    league = relationship("League", back_populates="analyses")

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "leagueId": self.league_id,
            "analysisType": self.analysis_type.value if self.analysis_type else None,
            "input": self.input,
            "output": self.output,
            "metadata": self.analysis_metadata or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class TradeAnalysis(Base):
    __tablename__ = "trade_analyses"

    id = Column(String(36), primary_key=True, default=_uuid)
    league_id = Column(String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    requested_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    team1_players = Column(JSON, nullable=False)
    team2_players = Column(JSON, nullable=False)
    fairness_score = Column(Float)
    team1_grade = Column(String(3))
    team2_grade = Column(String(3))
    recommendation = Column(String(20))
    analysis = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    league = relationship("League", back_populates="trade_analyses")

    def to_dict(self):
        return {
            "id": self.id,
            "leagueId": self.league_id,
            "requestedBy": self.requested_by,
            "team1Players": self.team1_players,
            "team2Players": self.team2_players,
            "fairnessScore": self.fairness_score,
            "team1Grade": self.team1_grade,
            "team2Grade": self.team2_grade,
            "recommendation": self.recommendation,
            "analysis": self.analysis or {},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500))
    read = Column(Boolean, default=False)
    priority = Column(Enum(NotificationPriority), default=NotificationPriority.MEDIUM)
    expires_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="notifications")
