"""Release wiki collection."""

from .wiki import WikiClient, parse_release_urls, wiki_page_url
