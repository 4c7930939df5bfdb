"""Generative service clients used by the generate step."""

from vidpost.services.base import ContentService, ImageService

__all__ = ["ContentService", "ImageService"]
