# riot/regions.py – platform → regional route mapping and queue constants

from typing import Dict

# Platform region → regional route for /account-v1 and /match-v5
REGION_GROUPS: Dict[str, str] = {
    "euw1": "europe", "eun1": "europe", "tr1": "europe", "ru": "europe",
    "na1": "americas", "br1": "americas", "la1": "americas", "la2": "americas",
    "kr": "asia", "jp1": "asia",
    "oc1": "sea", "ph2": "sea", "sg2": "sea", "th2": "sea", "tw2": "sea", "vn2": "sea",
}

REGION_NAMES: Dict[str, str] = {
    "euw1": "Europe West",
    "eun1": "Europe Nordic & East",
    "na1": "North America",
    "kr": "Korea",
    "br1": "Brazil",
    "la1": "Latin America North",
    "la2": "Latin America South",
    "oc1": "Oceania",
    "tr1": "Turkey",
    "ru": "Russia",
    "jp1": "Japan",
    "ph2": "Philippines",
    "sg2": "Singapore",
    "th2": "Thailand",
    "tw2": "Taiwan",
    "vn2": "Vietnam",
}

QUEUE_NAMES: Dict[int, str] = {
    0: "Custom",
    400: "Normal Draft",
    420: "Ranked Solo/Duo",
    430: "Normal Blind",
    440: "Ranked Flex",
    450: "ARAM",
    700: "Clash",
    720: "ARAM Clash",
    900: "URF",
    1020: "One for All",
    1300: "Nexus Blitz",
    1400: "Ultimate Spellbook",
    1700: "Arena",
    1710: "Arena",
    1900: "Pick URF",
}

# Queue filters accepted by get_recent_matches_with_details
QUEUE_FILTERS: Dict[str, int] = {
    "ranked": 420,
    "normal": 400,
}


def platform_host(region: str) -> str:
    """Host for platform-routed endpoints (summoner, league, mastery, spectator)."""
    platform = region.lower()
    if platform not in REGION_GROUPS:
        raise ValueError(f"Unknown region: {region!r}")
    return f"https://{platform}.api.riotgames.com"


def regional_host(region: str) -> str:
    """Host for regionally-routed endpoints (account, match)."""
    group = REGION_GROUPS.get(region.lower())
    if group is None:
        raise ValueError(f"Unknown region: {region!r}")
    return f"https://{group}.api.riotgames.com"


def queue_name(queue_id: int) -> str:
    return QUEUE_NAMES.get(queue_id, f"Queue {queue_id}")
