"""ORM models. Importing this package registers every table with Base.metadata."""
from filmnight.models.user import User, Role                        # noqa: F401
from filmnight.models.film import Film                              # noqa: F401
from filmnight.models.event import Event                            # noqa: F401
from filmnight.models.event_film import EventFilm                   # noqa: F401
from filmnight.models.invitation import Invitation, InvitationStatus  # noqa: F401
from filmnight.models.feature_request import FeatureRequest, FeatureRequestStatus  # noqa: F401
