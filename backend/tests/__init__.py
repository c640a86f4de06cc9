# Register every SQLModel table before any test creates the schema
from gbv.models import Match, Pool, ScheduleTemplate, Team, Tournament  # noqa: F401
