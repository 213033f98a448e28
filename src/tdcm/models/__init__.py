from tdcm.models.gdina import GDINA, ParameterLayout

__all__ = ["GDINA", "ParameterLayout"]
