"""Global constants for chordchart."""

# Pitch names
PITCH_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
SHARP_NAMES = PITCH_NAMES
FLAT_NAMES = ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B")

# Natural letters and their pitch classes
LETTERS = ("C", "D", "E", "F", "G", "A", "B")
LETTER_PITCH_CLASSES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

SHARP_SIGNS = ("#", "♯")
FLAT_SIGNS = ("b", "♭")

# Fallback spelling table: flats for F, Bb, Eb, Ab, Db, Gb; sharps for the rest
DEFAULT_FLAT_PITCH_CLASSES = frozenset({5, 10, 3, 8, 1, 6})

# Scales (intervals from tonic)
MAJOR_SCALE = (0, 2, 4, 5, 7, 9, 11)
NATURAL_MINOR_SCALE = (0, 2, 3, 5, 7, 8, 10)

# Conventional tonic spellings when a key has to be named from a pitch class
MAJOR_KEY_NAMES = ("C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B")
MINOR_KEY_NAMES = ("C", "C#", "D", "Eb", "E", "F", "F#", "G", "G#", "A", "Bb", "B")

# Key detection
KEY_LOW_CONFIDENCE_THRESHOLD = 0.15
NASHVILLE_KEY_CONFIDENCE = 0.5

# Capo range
MAX_CAPO_FRET = 11
