from .interface import Beginnable, Params, Queryable, Row, Transactional

__all__ = ("Beginnable", "Params", "Queryable", "Row", "Transactional")
