"""auth/ -- Authentication and session lifecycle for Brewhouse.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or beers/.
api/ imports from auth/, not the other way around.
"""
