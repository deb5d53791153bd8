"""HDF5 container layout constants.

An image is stored under a configurable group path ``P``:

    /P/<dataset>            — voxel array, slowest-moving axis first,
                              component axis last when there is more than one
        attr Origin         — float64[N]
        attr Spacing        — float64[N]
        attr Directions     — float64[N][N]
        attr Dimension      — uint64[N], authoritative over the dataset shape
    /P/ITKMetaData/
        /<key>              — rank-1 dataset per metadata entry

Any dataset may carry one boolean disambiguation tag (``isBool``,
``isLong``, ...) recording which host type its integer payload represents.
"""

# Dataset attributes
ORIGIN_ATTR = "Origin"
SPACING_ATTR = "Spacing"
DIRECTIONS_ATTR = "Directions"
DIMENSION_ATTR = "Dimension"

# Metadata subgroup
METADATA_GROUP = "ITKMetaData"

# Disambiguation tags, in the order they are checked on read
IS_BOOL = "isBool"
IS_LONG = "isLong"
IS_UNSIGNED_LONG = "isUnsignedLong"
IS_LLONG = "isLLong"
IS_ULLONG = "isULLong"
TAGS = (IS_BOOL, IS_LONG, IS_UNSIGNED_LONG, IS_LLONG, IS_ULLONG)

# Defaults
DEFAULT_PATH = "/"
DEFAULT_DATASET_NAME = "data"

# File extensions handled for both reading and writing
FILE_EXTENSIONS = (".hdf", ".h4", ".hdf4", ".h5", ".hdf5", ".he4", ".he5", ".hd5")

# Compression settings
COMPRESSION = "gzip"
DEFAULT_COMPRESSION_LEVEL = 5
MAX_COMPRESSION_LEVEL = 9

# Keep new files readable by HDF5 1.8
LIBVER_BOUNDS = ("earliest", "v108")
