"""Parser package: feed documents to comparable structures."""

from parser.feed import FeedItem, FeedParserAdapter, ParsedFeed, neutralize_feed_url

__all__ = ["FeedItem", "FeedParserAdapter", "ParsedFeed", "neutralize_feed_url"]
