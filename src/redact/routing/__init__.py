"""Routing — static exact-match table plus ordered ``:param`` patterns.

Routes are registered during setup; the table is read-only once the
app starts serving requests.
"""
