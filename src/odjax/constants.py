"""
Physical constants and fixed offsets used by the orbit determination
pipeline.  All values are SI.
"""

# Time

"""
Offset between Julian Date and Modified Julian Date. Units: *days*
"""
JD_MJD_OFFSET = 2400000.5

"""
Number of SI seconds in one day. Units: *s*
"""
SECONDS_PER_DAY = 86400.0

# Earth

"""
Earth's equatorial radius. [m]

References:
1. GGM05s Gravity Model
"""
R_EARTH = 6.378136300e6

"""
WGS84 ellipsoid semi-major axis and flattening, used to place ground
stations.

References:
1. NIMA Technical Report TR8350.2
"""
WGS84_a = 6378137.0
WGS84_f = 1.0 / 298.257223563

"""
Earth's gravitational parameter. [m^3/s^2]

References:
1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
Applications*, 2012.
"""
GM_EARTH = 3.986004415e14

"""
Earth's rotation rate about its polar axis. [rad/s]

References:
1. D. Vallado, *Fundamentals of Astrodynamics and Applications (4th Ed.)*, p. 222, 2010
"""
OMEGA_EARTH = 7.292115146706979e-5
