"""Buoy / satellite ice surface temperature matchups on a polar stereographic grid."""

__version__ = "0.1.0"
