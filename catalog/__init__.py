"""catalog/ -- Book inventory and purchases.

Layer rule: catalog/ may import from core/ and auth/ (for User, UserStore and
the role policy). It does NOT import from api/.
"""
