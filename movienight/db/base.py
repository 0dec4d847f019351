from movienight.db.base_class import Base

# Import ALL models so SQLAlchemy registers them
from movienight.models.daily_cycle import DailyCycle  # noqa: F401
from movienight.models.cycle_decision import CycleDecision  # noqa: F401
from movienight.models.cycle_nomination import CycleNomination  # noqa: F401
from movienight.models.cycle_vote import CycleVote  # noqa: F401
from movienight.models.library_movie import LibraryMovie  # noqa: F401
from movienight.models.shared_movie import SharedMovie  # noqa: F401
from movienight.models.active_user import ActiveUser  # noqa: F401
