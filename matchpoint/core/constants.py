"""Global constants for the matchpoint application."""

# Database-related constants
FIRESTORE_BATCH_LIMIT = 400

# Collection names
GAMES_COLLECTION = "games"
PARTICIPANTS_COLLECTION = "gameParticipants"
SERIES_COLLECTION = "recurringSeries"
GROUP_MEMBERS_COLLECTION = "groupMembers"

# Game statuses
GAME_STATUS_UPCOMING = "UPCOMING"
GAME_STATUS_IN_PROGRESS = "IN_PROGRESS"
GAME_STATUS_COMPLETED = "COMPLETED"
GAME_STATUS_CANCELLED = "CANCELLED"
GAME_STATUSES = (
    GAME_STATUS_UPCOMING,
    GAME_STATUS_IN_PROGRESS,
    GAME_STATUS_COMPLETED,
    GAME_STATUS_CANCELLED,
)
# Registration is only open while a game is in one of these states
OPEN_GAME_STATUSES = (GAME_STATUS_UPCOMING, GAME_STATUS_IN_PROGRESS)
# Status changes a manager may make
GAME_STATUS_TRANSITIONS = {
    GAME_STATUS_UPCOMING: (
        GAME_STATUS_IN_PROGRESS,
        GAME_STATUS_COMPLETED,
        GAME_STATUS_CANCELLED,
    ),
    GAME_STATUS_IN_PROGRESS: (GAME_STATUS_COMPLETED, GAME_STATUS_CANCELLED),
    GAME_STATUS_COMPLETED: (),
    GAME_STATUS_CANCELLED: (),
}
GAME_LIST_LIMIT = 50

# Participant statuses
PARTICIPANT_CONFIRMED = "CONFIRMED"
PARTICIPANT_WAITLIST = "WAITLIST"
PARTICIPANT_DECLINED = "DECLINED"
ACTIVE_PARTICIPANT_STATUSES = (PARTICIPANT_CONFIRMED, PARTICIPANT_WAITLIST)

# Group roles allowed to manage games
MANAGER_ROLES = ("admin", "organizer")

# Recurring series
FREQUENCY_WEEKLY = "weekly"
FREQUENCY_BIWEEKLY = "biweekly"
FREQUENCY_MONTHLY = "monthly"
FREQUENCIES = (FREQUENCY_WEEKLY, FREQUENCY_BIWEEKLY, FREQUENCY_MONTHLY)
DEFAULT_TIMEZONE = "UTC"
SERIES_INSTANCE_LIMIT = 20
SERIES_LIST_LIMIT = 20

# Priority scoring
PRIORITY_MIN_SCORE = 0
PRIORITY_MAX_SCORE = 100
PRIORITY_DEFAULT_SCORE = 50
PRIORITY_RELIABILITY_WEIGHT = 0.6
PRIORITY_SENIORITY_WEIGHT = 0.4
PRIORITY_SENIORITY_SATURATION_DAYS = 90
PRIORITY_HISTORY_LIMIT = 10

# Transactions
TRANSACTION_MAX_ATTEMPTS = 5
TRANSACTION_TIMEOUT_SECONDS = 10.0
