from gbv.models.match import Match
from gbv.models.pool import Pool
from gbv.models.schedule_template import ScheduleTemplate
from gbv.models.team import Team
from gbv.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Pool",
    "Team",
    "Match",
    "ScheduleTemplate",
]
