# Importing the package registers the built-in extraction sources
from . import apify_posts  # noqa: F401
