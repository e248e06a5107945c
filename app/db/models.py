from datetime import datetime
from typing import Any

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import (
    JSON, Boolean, DateTime, Float, Integer, String, Text, UniqueConstraint, func,
)


class Base(DeclarativeBase):
    pass


class League(Base):
    __tablename__ = "leagues"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # Yahoo league key, e.g. "427.l.12345"
    league_key: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    league_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    season: Mapped[str] = mapped_column(String(8), index=True)
    game_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    num_teams: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scoring_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    league_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    draft_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    current_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    is_finished: Mapped[bool] = mapped_column(Boolean, default=False)
    renew: Mapped[str | None] = mapped_column(String(32), nullable=True)
    renewed: Mapped[str | None] = mapped_column(String(32), nullable=True)
    playoff_start_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    num_playoff_teams: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stat_categories: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)  # {stat_id: display_name}

    # Stamped only once every phase of a sync run persisted
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), onupdate=func.now(), nullable=True)


class Team(Base):
    __tablename__ = "teams"
    __table_args__ = (UniqueConstraint("team_key", "season", name="uq_teams_team_key_season"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    team_key: Mapped[str] = mapped_column(String(64), index=True)
    season: Mapped[str] = mapped_column(String(8), index=True)
    league_key: Mapped[str] = mapped_column(String(64), index=True)
    team_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    manager_guid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    manager_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_is_commissioner: Mapped[bool] = mapped_column(Boolean, default=False)
    number_of_moves: Mapped[int | None] = mapped_column(Integer, nullable=True)
    number_of_trades: Mapped[int | None] = mapped_column(Integer, nullable=True)
    clinched_playoffs: Mapped[bool] = mapped_column(Boolean, default=False)

    # standings
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    wins: Mapped[int | None] = mapped_column(Integer, nullable=True)
    losses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ties: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    points_for: Mapped[float | None] = mapped_column(Float, nullable=True)
    points_against: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), onupdate=func.now(), nullable=True)


class Matchup(Base):
    __tablename__ = "matchups"
    __table_args__ = (
        UniqueConstraint("league_key", "matchup_id", "season", name="uq_matchups_league_matchup_season"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # week * 10000 + low team id * 100 + high team id; unique only within a league
    matchup_id: Mapped[int] = mapped_column(Integer, index=True)
    season: Mapped[str] = mapped_column(String(8), index=True)
    league_key: Mapped[str] = mapped_column(String(64), index=True)
    week: Mapped[int] = mapped_column(Integer)
    week_start: Mapped[str | None] = mapped_column(String(10), nullable=True)
    week_end: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    team1_key: Mapped[str] = mapped_column(String(64), index=True)
    team2_key: Mapped[str] = mapped_column(String(64), index=True)
    team1_points: Mapped[float | None] = mapped_column(Float, nullable=True)
    team2_points: Mapped[float | None] = mapped_column(Float, nullable=True)
    team1_stats: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    team2_stats: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    winner_team_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_playoffs: Mapped[bool] = mapped_column(Boolean, default=False)
    is_consolation: Mapped[bool] = mapped_column(Boolean, default=False)
    is_tied: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped["DateTime"] = mapped_column(DateTime(timezone=True), onupdate=func.now(), nullable=True)


class DraftResult(Base):
    __tablename__ = "draft_results"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    league_key: Mapped[str] = mapped_column(String(64), index=True)
    season: Mapped[str] = mapped_column(String(8), index=True)
    pick: Mapped[int] = mapped_column(Integer)
    round: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    player_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    player_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    player_position: Mapped[str | None] = mapped_column(String(32), nullable=True)
    cost: Mapped[int | None] = mapped_column(Integer, nullable=True)  # auction drafts only


class Transaction(Base):
    __tablename__ = "transactions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    league_key: Mapped[str] = mapped_column(String(64), index=True)
    season: Mapped[str] = mapped_column(String(8), index=True)
    transaction_key: Mapped[str] = mapped_column(String(64))
    type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    timestamp: Mapped[int | None] = mapped_column(Integer, nullable=True)
    players: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
