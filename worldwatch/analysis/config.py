"""
Analysis configuration - news categories, tracked instruments, hotspots.
"""

from worldwatch.analysis.types import Hotspot


# News categories and the feed names the ingestion layer pulls for each
NEWS_CATEGORIES: dict[str, list[str]] = {
    "politics": ["BBC World", "NPR News", "Guardian World", "AP News"],
    "tech": ["Hacker News", "Ars Technica", "The Verge", "MIT Tech Review"],
    "finance": ["CNBC", "MarketWatch", "Yahoo Finance", "Financial Times"],
    "gov": ["White House", "State Dept", "Pentagon", "Treasury"],
    "middleeast": ["Al Jazeera", "Times of Israel", "Al Arabiya"],
    "layoffs": ["Layoffs.fyi", "TechCrunch Layoffs"],
    "congress": ["Politico", "The Hill", "Roll Call"],
    "ai": ["OpenAI Blog", "Anthropic News", "Google AI Blog", "VentureBeat AI"],
    "thinktanks": ["Brookings", "CFR", "CSIS", "RAND"],
    "intel": ["Defense One", "Breaking Defense", "The War Zone", "Bellingcat"],
}

# Instruments tracked by the markets panel
MARKET_SYMBOLS: dict[str, str] = {
    "^GSPC": "S&P 500",
    "^DJI": "Dow Jones",
    "^IXIC": "NASDAQ",
    "^VIX": "VIX",
    "CL=F": "Crude Oil",
    "GC=F": "Gold",
    "NVDA": "NVIDIA",
    "LMT": "Lockheed Martin",
    "BTC-USD": "Bitcoin",
}

# Which instruments a news category is expected to move
CATEGORY_SYMBOLS: dict[str, list[str]] = {
    "politics": ["^GSPC", "^VIX"],
    "tech": ["^IXIC", "NVDA"],
    "finance": ["^GSPC", "^DJI", "^IXIC", "^VIX", "BTC-USD"],
    "gov": ["^GSPC", "^VIX"],
    "middleeast": ["CL=F", "GC=F", "LMT"],
    "layoffs": ["^IXIC", "^DJI"],
    "congress": ["^GSPC"],
    "ai": ["NVDA", "^IXIC"],
    "thinktanks": [],
    "intel": ["LMT", "GC=F", "^VIX"],
}

# Monitored geopolitical locations
INTEL_HOTSPOTS: list[Hotspot] = [
    Hotspot(
        name="Taiwan Strait",
        lat=24.0,
        lon=119.5,
        keywords=("taiwan", "taipei", "strait", "pla navy"),
    ),
    Hotspot(
        name="Strait of Hormuz",
        lat=26.6,
        lon=56.3,
        keywords=("hormuz", "persian gulf", "tanker", "irgc"),
    ),
    Hotspot(
        name="Kyiv",
        lat=50.45,
        lon=30.52,
        keywords=("kyiv", "ukraine", "zelensky", "kremlin"),
    ),
    Hotspot(
        name="Gaza",
        lat=31.5,
        lon=34.47,
        keywords=("gaza", "hamas", "rafah", "idf"),
    ),
    Hotspot(
        name="Tehran",
        lat=35.69,
        lon=51.39,
        keywords=("iran", "tehran", "khamenei", "natanz"),
    ),
    Hotspot(
        name="Pyongyang",
        lat=39.03,
        lon=125.75,
        keywords=("north korea", "pyongyang", "kim jong", "dprk"),
    ),
    Hotspot(
        name="South China Sea",
        lat=12.0,
        lon=114.0,
        keywords=("south china sea", "spratly", "scarborough", "philippines"),
    ),
    Hotspot(
        name="Red Sea",
        lat=15.5,
        lon=41.8,
        keywords=("houthi", "red sea", "bab el-mandeb", "yemen"),
    ),
    Hotspot(
        name="Sahel",
        lat=14.5,
        lon=1.5,
        keywords=("sahel", "mali", "niger", "burkina faso", "wagner"),
    ),
    Hotspot(
        name="Caracas",
        lat=10.49,
        lon=-66.88,
        keywords=("venezuela", "caracas", "maduro"),
    ),
    Hotspot(
        name="Washington DC",
        lat=38.9,
        lon=-77.04,
        keywords=("pentagon", "white house", "congress", "capitol"),
    ),
]


def categories_for_symbol(symbol: str) -> set[str]:
    """Get the news categories expected to move an instrument."""
    return {
        category
        for category, symbols in CATEGORY_SYMBOLS.items()
        if symbol in symbols
    }
