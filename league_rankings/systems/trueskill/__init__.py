"""TrueSkill rating system for team games."""

from .trueskill import TrueSkill, TrueSkillConfig

__all__ = ["TrueSkill", "TrueSkillConfig"]
