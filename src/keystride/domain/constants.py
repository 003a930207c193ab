"""Centralized constants for the keystride engine.

All thresholds, capacities and fixed tables live here so every layer
imports from a single source of truth.
"""

STATE_VERSION = 1

# ---------- Metrics Store ----------
IKI_WINDOW = 20
IKI_MIN_MS = 0  # exclusive
IKI_MAX_MS = 3000  # exclusive; longer gaps are pauses, not reaction time
MASTERY_MIN_TOTAL = 20
MASTERY_MIN_ACCURACY = 0.85
MASTERY_MAX_STDDEV_MS = 150
WEAK_MIN_TOTAL = 10
WEAK_ACCURACY_THRESHOLD = 0.75

# ---------- Spaced Repetition ----------
SR_INTERVALS = [1, 3, 7, 14, 30]  # sessions, indexed by Leitner box
SR_TOP_BOX = len(SR_INTERVALS) - 1
SR_MIN_TOTAL_FOR_REVIEW = 5
SR_PROMOTION_ACCURACY = 0.85

# ---------- Sessions ----------
MAX_SESSIONS = 100
MAX_SESSION_STARS = 7
STAR_HIGH_ACCURACY = 95
STAR_SPEED_MULTIPLIER = 1.5
STAR_EXERCISES_TIERS = (5, 10)
SESSION_LOG_CAPACITY = 500

# ---------- Age norms ----------
# label -> (target wpm, target accuracy %, target session minutes)
AGE_NORMS = {
    "6-7": (10, 70, 10),
    "8-9": (18, 80, 15),
    "10-11": (28, 85, 20),
    "12-13": (35, 90, 25),
    "14+": (45, 92, 30),
}
DEFAULT_AGE_GROUP = "10-11"

# ---------- Adaptive generator ----------
ROLLING_WINDOW = 30
MIN_KEYSTROKES_FOR_PHASE = 15
PHASE_TIME_MAX_MS = 2000  # exclusive
DEFAULT_AVG_TIME_MS = 300
SPEED_BONUS_PIVOT_MS = 250
SPEED_BONUS_DIVISOR = 25
DRILL_TO_WORDS = 70
WORDS_TO_COMPLEXITY = 82
COMPLEXITY_TO_MASTERY = 88
WORD_WEAK_ACCURACY = 0.85
WEAK_BIGRAM_MIN_TOTAL = 3
WEAK_BIGRAM_RATE = 0.9
REVIEW_INJECTION_PROBABILITY = 0.3
MODULE_COMPLETE_MIN_KEYSTROKES = 30

# ---------- Report ----------
REPORT_WINDOW = 7
REPORT_MASTERED_LIMIT = 10
REPORT_WEAK_LIMIT = 5
SUGGESTION_WEAK_LIMIT = 4
NORM_ABOVE_FACTOR = 1.2
NORM_BELOW_FACTOR = 0.7

# ---------- Persistence ----------
SAVED_KEY_SAMPLES = 10
SAVED_BIGRAM_SAMPLES = 5

# ---------- Caregiver challenge ----------
CHALLENGE_WEAK_THRESHOLD = 0.9
CHALLENGE_MAX_KEYS = 6

DEFAULT_GAME_PROGRESS = {
    "typeflow": {"moduleProgress": {}, "bestWpm": 0, "totalSessions": 0},
    "typequest": {"completedLessons": [], "achievements": [], "totalSessions": 0},
    "pong": {"highScore": 0, "levelsCleared": 0, "totalSessions": 0},
    "duckhunt": {"highScore": 0, "ducksHit": 0, "totalSessions": 0},
    "kitchen": {"completedTiers": [], "totalSessions": 0},
    "journal": {"totalSessions": 0, "totalWords": 0, "totalEntries": 0},
}
DEFAULT_THEME = "default"
