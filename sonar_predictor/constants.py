"""
Fixed constants shared by the loader, the trainer and the request handlers.
"""

N_FEATURES = 60

LEARNING_RATE = 0.1
N_EPOCHS = 2000
SIGMOID_CLAMP = 500.0
DECISION_THRESHOLD = 0.5

MATCH_TOLERANCE = 1e-4
FEATURE_MIN = 0.0
FEATURE_MAX = 1.0

ROCK = "R"
MINE = "M"
LABEL_NAMES = {ROCK: "Rock", MINE: "Mine"}
UNKNOWN_LABEL_NAME = "Unknown"

FEATURE_NAMES = [f"band_{i:02d}" for i in range(1, N_FEATURES + 1)]

DEFAULT_DATASET_PATH = "data/sonar.csv"
DEFAULT_SAMPLES_PATH = "data/sonar_samples.txt"

INVALID_FEATURES_MESSAGE = "Invalid features. Expected exactly 60 numbers."
NOT_FROM_DATASET_ERROR = (
    "This data is not from the trained dataset. "
    "Please use values from the sonar dataset or load a sample."
)
NOT_FROM_DATASET_WARNING = (
    "Warning: This input is not from the training dataset. Results may be unreliable."
)
