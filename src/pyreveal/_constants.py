"""Internal constants shared across the library."""

USER_AGENT = "pyreveal/0.1"

DEFAULT_SCOPE = "default"

# ------------------------------------------------------------------
# Geometry tolerances (degrees)
# ------------------------------------------------------------------

#: Coordinates closer than this are treated as coincident (~1 cm at the equator).
SNAP_TOLERANCE_DEGREES = 1e-7

#: Two GPS fixes closer than this are the same fix (~1 m).
DUPLICATE_LOCATION_TOLERANCE = 0.00001

#: Viewport bounds moving less than this are not worth a new update (~100 m).
BOUNDS_CHANGE_THRESHOLD = 0.001

#: Douglas-Peucker tolerance used when compacting revealed geometry (~1 m).
SIMPLIFY_TOLERANCE_DEGREES = 0.00001

# ------------------------------------------------------------------
# Geometry complexity classification (total vertex count)
# ------------------------------------------------------------------

COMPLEXITY_MEDIUM_VERTICES = 500
COMPLEXITY_HIGH_VERTICES = 1000

# ------------------------------------------------------------------
# Earth
# ------------------------------------------------------------------

EARTH_SURFACE_AREA_KM2 = 510_072_000.0
GEOD_ELLIPSOID = "WGS84"

#: Segments used to approximate a geodesic disc around a fix.
BUFFER_RESOLUTION = 32

LONGITUDE_RANGE: tuple[float, float] = (-180.0, 180.0)
LATITUDE_RANGE: tuple[float, float] = (-90.0, 90.0)


def in_longitude_range(value: float) -> bool:
    return LONGITUDE_RANGE[0] <= value <= LONGITUDE_RANGE[1]


def in_latitude_range(value: float) -> bool:
    return LATITUDE_RANGE[0] <= value <= LATITUDE_RANGE[1]
