"""Rating system implementations.

Strategies (one is live per run):
- TrueSkill: Bayesian team skill estimation with Gaussian beliefs (primary)
- Elo: Expected-score + point-differential update (legacy)

Shared pieces:
- gaussian: Normal PDF/CDF and truncated-Gaussian moments
- team_strength: Roster-average strength with confidence
- decay: Inactivity decay at season transitions

All hot paths use Numba.
"""

from .decay import apply_inactivity_decay, decay_rating
from .elo import Elo, EloConfig
from .gaussian import norm_cdf, norm_pdf, v_win, w_win
from .team_strength import TeamStrength, calculate_team_strength
from .trueskill import TrueSkill, TrueSkillConfig

SYSTEMS = {
    "trueskill": TrueSkill,
    "elo": Elo,
}


def get_system(name: str):
    """Instantiate a rating system by name with default configuration."""
    try:
        return SYSTEMS[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown rating system: {name}. Available: {', '.join(SYSTEMS)}"
        ) from None


__all__ = [
    "TrueSkill",
    "TrueSkillConfig",
    "Elo",
    "EloConfig",
    "TeamStrength",
    "calculate_team_strength",
    "apply_inactivity_decay",
    "decay_rating",
    "norm_cdf",
    "norm_pdf",
    "v_win",
    "w_win",
    "SYSTEMS",
    "get_system",
]
