"""Global constants for the estateportal application."""

# Firestore allows 500 writes per batch; stay below it.
FIRESTORE_BATCH_LIMIT = 400

# Collection names
USERS_COLLECTION = "users"
COMPETITIONS_COLLECTION = "competitions"
TEAMS_COLLECTION = "competition_teams"
TEAM_MEMBERS_COLLECTION = "competition_team_members"
MATCHES_COLLECTION = "competition_matches"
REFEREES_COLLECTION = "competition_referees"

# Roles stored on user documents
ROLE_ADMIN = "admin"
ROLE_BOARD = "board"

# Competition vocabularies
FORMAT_KNOCKOUT = "knockout"
COMPETITION_FORMATS = ("knockout", "round_robin", "league", "swiss", "custom")
MATCH_TYPES = ("1v1", "2v2", "3v3", "5v5", "11v11", "custom")
PARTICIPANT_TYPES = ("user", "house", "team")

COMPETITION_STATUS_REGISTRATION = "registration"
COMPETITION_STATUSES = ("registration", "ongoing", "completed", "cancelled")

MATCH_STATUS_SCHEDULED = "scheduled"
MATCH_STATUS_COMPLETED = "completed"
MATCH_STATUSES = ("scheduled", "ongoing", "completed", "cancelled")

# Bracket generation
MIN_BRACKET_PARTICIPANTS = 2
