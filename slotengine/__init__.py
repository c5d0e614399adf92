"""
slotengine - turns weekly availability into bookable session slots.
"""

__version__ = "0.1.0"
