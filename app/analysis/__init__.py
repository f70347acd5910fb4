"""Text and URL analysis for provider answers.

  - mention_analyzer: brand/competitor mentions and keyword sentiment
  - urls: citation domain extraction and URL normalization
  - content_classifier: content-structure category of cited pages
"""
