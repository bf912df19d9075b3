"""Named constants for axis layout, parton ids and the binary format.

These replace magic numbers scattered throughout the codebase.
"""

# ---------------------------------------------------------------------------
# Axis names in tensor order (after the leading parton-id axis)
# ---------------------------------------------------------------------------
NUCLEONS = "nucleons"   # Nucleon number A
ALPHAS = "alphas"       # Strong coupling value
KT = "kt"               # Transverse momentum
X = "x"                 # Momentum fraction
Q2 = "q2"               # Energy scale squared (GeV^2)

AXIS_NAMES = (NUCLEONS, ALPHAS, KT, X, Q2)
LOG_AXES = frozenset({X, Q2})
AXIS_INDEX = {name: i for i, name in enumerate(AXIS_NAMES)}

# ---------------------------------------------------------------------------
# Parton ids (PDG Monte-Carlo numbering)
# ---------------------------------------------------------------------------
PID_GLUON = 21
PID_GLUON_ALT = 0       # LHAPDF convention, alias of 21
PID_PHOTON = 22

# ---------------------------------------------------------------------------
# Physics defaults
# ---------------------------------------------------------------------------
MZ_DEFAULT = 91.1876        # Z boson mass (GeV)
PROTON_NUCLEONS = 1.0
ION_PID_THRESHOLD = 1000000000  # PDG ion codes are 10LZZZAAAI

# ---------------------------------------------------------------------------
# Binary format
# ---------------------------------------------------------------------------
MAGIC = b"PYNEOPDF"
FORMAT_VERSION = 1
ENDIAN_MARKER = 0xFEFF
HEADER_FORMAT = "<8sHHB3x"      # magic, version, endian marker, compression id
CHECKSUM_SIZE = 8
COMPRESSION_IDS = {"none": 0, "zlib": 1, "bz2": 2}
COMPRESSION_NAMES = {v: k for k, v in COMPRESSION_IDS.items()}
