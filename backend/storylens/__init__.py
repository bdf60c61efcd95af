"""StoryLens — annotated-image captioning service."""

__version__ = "0.1.0"
