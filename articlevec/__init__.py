"""articlevec: news articles -> annotated documents -> labeled feature vectors."""

__version__ = "0.1.0"
