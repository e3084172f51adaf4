"""Shared data model helpers."""

from v2ex_digest.data_model.base import StrictBaseModel


__all__ = ["StrictBaseModel"]
