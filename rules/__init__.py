"""Platform handlers, rewrites and probes, plus the default registries."""

from rules.base import (
    PlatformHandler,
    Probe,
    Rewrite,
    apply_rules,
    probe_candidates,
)
from rules.blogger import BloggerHandler, blogger_handler
from rules.blogspot import BlogspotRewrite, blogspot_rewrite
from rules.feedburner import FeedBurnerHandler, feedburner_handler
from rules.wordpress import (
    WordPressComRewrite,
    WordPressProbe,
    wordpress_com_rewrite,
    wordpress_probe,
)

# Built once at import; tuples so no caller can mutate them between runs.
DEFAULT_PLATFORMS: tuple[PlatformHandler, ...] = (feedburner_handler, blogger_handler)
DEFAULT_REWRITES: tuple[Rewrite, ...] = (blogspot_rewrite, wordpress_com_rewrite)
DEFAULT_PROBES: tuple[Probe, ...] = (wordpress_probe,)

__all__ = [
    "BloggerHandler",
    "BlogspotRewrite",
    "DEFAULT_PLATFORMS",
    "DEFAULT_PROBES",
    "DEFAULT_REWRITES",
    "FeedBurnerHandler",
    "PlatformHandler",
    "Probe",
    "Rewrite",
    "WordPressComRewrite",
    "WordPressProbe",
    "apply_rules",
    "blogger_handler",
    "blogspot_rewrite",
    "feedburner_handler",
    "probe_candidates",
    "wordpress_com_rewrite",
    "wordpress_probe",
]
