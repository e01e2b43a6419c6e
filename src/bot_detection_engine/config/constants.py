"""
Constants for bot detection: thresholds, path heuristics, legacy bot table,
published crawler IP ranges and provider egress prices.
"""

# =============================================================================
# Detection defaults
# =============================================================================

# Velocity
DEFAULT_MAX_REQUESTS_PER_SECOND = 5
DEFAULT_MAX_REQUESTS_PER_MINUTE = 100
DEFAULT_MIN_INTERVAL_MS = 50

# Sessions
DEFAULT_MAX_GAP_MINUTES = 30
DEFAULT_MAX_DURATION_HOURS = 8

# Fusion weights (renormalized by contributing weight at fusion time)
DEFAULT_VELOCITY_WEIGHT = 0.25
DEFAULT_PATTERN_WEIGHT = 0.25
DEFAULT_SIGNATURE_WEIGHT = 0.35
DEFAULT_BEHAVIOR_WEIGHT = 0.15

# Results at or below this confidence are treated as human traffic
DEFAULT_CONFIDENCE_THRESHOLD = 0.3

# Chunked processing
DEFAULT_CHUNK_SIZE = 5000
DEFAULT_MAX_CONCURRENT_CHUNKS = 3
DEFAULT_TIME_WINDOW_HOURS = 48
DEFAULT_MAX_MEMORY_MB = 512
DEFAULT_MEMORY_WAIT_SECONDS = 5.0

TOP_OFFENDERS_LIMIT = 10
SAMPLE_PATH_LIMIT = 10

# =============================================================================
# Velocity heuristics
# =============================================================================

BURST_INTERVAL_MS = 1000  # intervals below this count toward a burst run
BURST_MIN_RUN = 3
INTERVAL_BUCKET_MS = 100
PERIODIC_BUCKET_SHARE = 0.7
FAST_INTERVAL_SHARE = 0.5
BURST_SCORE_BOT_THRESHOLD = 0.8

# =============================================================================
# Crawl-pattern heuristics
# =============================================================================

# Numeric templates checked for sequential crawling, in evaluation order
SEQUENTIAL_PATH_TEMPLATES = [
    r"/page/(\d+)",
    r"/p(\d+)",
    r"/(\d+)/",
    r"\?page=(\d+)",
    r"\?p=(\d+)",
    r"/product/(\d+)",
    r"/article/(\d+)",
    r"/item/(\d+)",
    r"/post/(\d+)",
]

ALPHABETICAL_PATH_TEMPLATE = r"/([a-z])/"

CRAWLER_FILE_EXTENSIONS = ["xml", "json", "rss", "atom", "txt", "csv"]

CRAWLER_PATH_PATTERNS = [
    r"robots\.txt$",
    r"sitemap.*\.xml$",
    r"\.well-known",
    r"/api/",
    r"/admin",
    r"/wp-",
    r"/feed",
    r"/rss",
]

SITEMAP_PATTERNS = [r"sitemap.*\.xml$", r"robots\.txt$"]

# =============================================================================
# Session-behavior heuristics
# =============================================================================

STATIC_ASSET_PATTERN = r"\.(css|js|jpg|jpeg|png|gif|svg|woff2?|ttf|ico|webp)$"
STATIC_ASSET_DIRECTORIES = ["/assets/", "/static/"]
HOMEPAGE_PATHS = ["/", "", "/index.html"]

# Human-session cutoff used by aggregate statistics
HUMAN_SCORE_THRESHOLD = 0.6

# =============================================================================
# Signature matching
# =============================================================================

# User agents of generic HTTP libraries lower a signature match's confidence
GENERIC_CLIENT_PATTERNS = [
    r"^Mozilla/5\.0 \(compatible; \w+\)$",
    r"python-requests",
    r"curl",
    r"wget",
]

# Legacy category vocabulary mapped onto the signature categories
LEGACY_CATEGORY_MAP = {
    "search_engine": "beneficial",
    "social_media": "beneficial",
    "monitoring": "beneficial",
    "ai_training": "extractive",
    "ai_scraper": "extractive",
    "ai_search": "extractive",
    "scraper": "malicious",
    "seo_tool": "malicious",
}

LEGACY_SEVERITY_MAP = {
    "low": "low",
    "medium": "medium",
    "high": "high",
    "critical": "extreme",
}

LEGACY_MATCH_CONFIDENCE = 0.7

# Maps bot name tokens to their legacy category, severity and description.
# Checked in order; matching is a case-insensitive word match on the name.
LEGACY_BOT_CLASSIFICATION = {
    # AI crawlers
    "GPTBot": {"category": "ai_training", "severity": "critical", "description": "OpenAI training crawler"},
    "ChatGPT-User": {"category": "ai_search", "severity": "high", "description": "ChatGPT browsing agent"},
    "OAI-SearchBot": {"category": "ai_search", "severity": "medium", "description": "OpenAI search crawler"},
    "ClaudeBot": {"category": "ai_training", "severity": "high", "description": "Anthropic training crawler"},
    "Claude-User": {"category": "ai_search", "severity": "medium", "description": "Claude browsing agent"},
    "PerplexityBot": {"category": "ai_search", "severity": "high", "description": "Perplexity answer engine crawler"},
    "Google-Extended": {"category": "ai_training", "severity": "medium", "description": "Google AI training token"},
    "Applebot-Extended": {"category": "ai_training", "severity": "medium", "description": "Apple AI training token"},
    "Bytespider": {"category": "ai_scraper", "severity": "critical", "description": "ByteDance crawler"},
    "Amazonbot": {"category": "ai_training", "severity": "medium", "description": "Amazon crawler"},
    "cohere-ai": {"category": "ai_training", "severity": "medium", "description": "Cohere crawler"},
    "Diffbot": {"category": "ai_scraper", "severity": "high", "description": "Diffbot extraction crawler"},
    # Search engines
    "Googlebot": {"category": "search_engine", "severity": "low", "description": "Google search crawler"},
    "bingbot": {"category": "search_engine", "severity": "low", "description": "Microsoft Bing crawler"},
    "DuckDuckBot": {"category": "search_engine", "severity": "low", "description": "DuckDuckGo crawler"},
    "YandexBot": {"category": "search_engine", "severity": "low", "description": "Yandex search crawler"},
    "Baiduspider": {"category": "search_engine", "severity": "medium", "description": "Baidu search crawler"},
    "Applebot": {"category": "search_engine", "severity": "low", "description": "Apple search crawler"},
    "Slurp": {"category": "search_engine", "severity": "low", "description": "Yahoo search crawler"},
    # Social media previews
    "facebookexternalhit": {"category": "social_media", "severity": "low", "description": "Facebook link preview"},
    "Twitterbot": {"category": "social_media", "severity": "low", "description": "X/Twitter link preview"},
    "LinkedInBot": {"category": "social_media", "severity": "low", "description": "LinkedIn link preview"},
    "Slackbot": {"category": "social_media", "severity": "low", "description": "Slack link preview"},
    "Discordbot": {"category": "social_media", "severity": "low", "description": "Discord link preview"},
    # Monitoring
    "UptimeRobot": {"category": "monitoring", "severity": "low", "description": "Uptime monitoring"},
    "Pingdom": {"category": "monitoring", "severity": "low", "description": "Pingdom monitoring"},
    "StatusCake": {"category": "monitoring", "severity": "low", "description": "StatusCake monitoring"},
    # SEO tools
    "AhrefsBot": {"category": "seo_tool", "severity": "high", "description": "Ahrefs backlink crawler"},
    "SemrushBot": {"category": "seo_tool", "severity": "high", "description": "Semrush SEO crawler"},
    "MJ12bot": {"category": "seo_tool", "severity": "high", "description": "Majestic backlink crawler"},
    "DotBot": {"category": "seo_tool", "severity": "medium", "description": "Moz crawler"},
    # Generic scrapers and HTTP libraries
    "Scrapy": {"category": "scraper", "severity": "high", "description": "Scrapy framework"},
    "python-requests": {"category": "scraper", "severity": "medium", "description": "Python requests library"},
    "curl": {"category": "scraper", "severity": "medium", "description": "curl command-line client"},
    "Wget": {"category": "scraper", "severity": "medium", "description": "GNU Wget"},
    "HeadlessChrome": {"category": "scraper", "severity": "high", "description": "Headless Chrome automation"},
}

# =============================================================================
# Published crawler ranges and verification rules
# =============================================================================

# Applied to catalog records that do not declare their own ranges
KNOWN_IP_RANGES = {
    "GPTBot": ["20.171.0.0/16", "20.163.0.0/16"],
    "ChatGPT-User": ["20.171.0.0/16", "40.84.180.0/22"],
    "Googlebot": ["66.249.64.0/19", "66.249.64.0/27", "209.85.128.0/17"],
    "bingbot": ["40.77.167.0/24", "207.46.13.0/24"],
    "CCBot": ["54.36.148.0/22", "54.36.149.0/24"],
    "Claude-Web": ["52.70.0.0/15"],
    "ClaudeBot": ["52.70.0.0/15"],
    "anthropic-ai": ["52.70.0.0/15"],
    "Bytespider": ["110.249.201.0/24", "111.225.148.0/24"],
    "YandexBot": ["5.255.253.0/24", "5.255.254.0/24"],
    "Baiduspider": ["180.76.15.0/24", "123.125.71.0/24"],
}

KNOWN_VERIFICATION_RULES = {
    "Googlebot": {"reverseDns": [r".*\.googlebot\.com$", r".*\.google\.com$"]},
    "bingbot": {"reverseDns": [r".*\.search\.msn\.com$"]},
    "GPTBot": {"reverseDns": [r".*\.openai\.com$"]},
    "YandexBot": {"reverseDns": [r".*\.yandex\.com$", r".*\.yandex\.ru$"]},
}

# =============================================================================
# Cost integration
# =============================================================================

# Egress price in USD per GB
PROVIDER_PRICE_PER_GB = {
    "cloudflare": 0.0,
    "vercel": 0.15,
    "netlify": 0.55,
    "aws": 0.09,
}
DEFAULT_PRICE_PER_GB = 0.09

BYTES_PER_GB = 1024**3
