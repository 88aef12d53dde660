"""
时代判定 - 根据系列名 / 系列ID / 发售日期推断卡牌所属时代
"""
import re
from datetime import date, datetime

from app.variants.types import (
    WOTC, EX, DP, HGSS, BLACK_WHITE, XY, SUN_MOON, SWORD_SHIELD, SCARLET_VIOLET
)


# 系列名 -> 时代 (优先级最高)
SERIES_ERA_MAP = {
    # WotC (1998-2003)
    'Base': WOTC,
    'Jungle': WOTC,
    'Fossil': WOTC,
    'Team Rocket': WOTC,
    'Gym Heroes': WOTC,
    'Gym Challenge': WOTC,
    'Gym': WOTC,
    'Neo Genesis': WOTC,
    'Neo Discovery': WOTC,
    'Neo Revelation': WOTC,
    'Neo Destiny': WOTC,
    'Neo': WOTC,
    'Legendary Collection': WOTC,
    'Expedition Base Set': WOTC,
    'Aquapolis': WOTC,
    'Skyridge': WOTC,
    'E-Card': WOTC,

    # EX (2003-2007)
    'EX': EX,
    'Ruby & Sapphire': EX,
    'Sandstorm': EX,
    'Dragon': EX,
    'Team Magma vs Team Aqua': EX,
    'Hidden Legends': EX,
    'FireRed & LeafGreen': EX,
    'Team Rocket Returns': EX,
    'Deoxys': EX,
    'Emerald': EX,
    'Unseen Forces': EX,
    'Delta Species': EX,
    'Legend Maker': EX,
    'Holon Phantoms': EX,
    'Crystal Guardians': EX,
    'Dragon Frontiers': EX,
    'Power Keepers': EX,

    # DP (2007-2009)
    'Diamond & Pearl': DP,
    'Mysterious Treasures': DP,
    'Secret Wonders': DP,
    'Great Encounters': DP,
    'Majestic Dawn': DP,
    'Legends Awakened': DP,
    'Stormfront': DP,
    'Platinum': DP,
    'Rising Rivals': DP,
    'Supreme Victors': DP,
    'Arceus': DP,

    # HGSS (2010-2011)
    'HeartGold & SoulSilver': HGSS,
    'HS—Unleashed': HGSS,
    'HS—Undaunted': HGSS,
    'HS—Triumphant': HGSS,
    'Call of Legends': HGSS,

    # Black & White (2011-2013)
    'Black & White': BLACK_WHITE,
    'Emerging Powers': BLACK_WHITE,
    'Noble Victories': BLACK_WHITE,
    'Next Destinies': BLACK_WHITE,
    'Dark Explorers': BLACK_WHITE,
    'Dragons Exalted': BLACK_WHITE,
    'Dragon Vault': BLACK_WHITE,
    'Boundaries Crossed': BLACK_WHITE,
    'Plasma Storm': BLACK_WHITE,
    'Plasma Freeze': BLACK_WHITE,
    'Plasma Blast': BLACK_WHITE,
    'Legendary Treasures': BLACK_WHITE,

    # XY (2014-2016)
    'XY': XY,
    'Flashfire': XY,
    'Furious Fists': XY,
    'Phantom Forces': XY,
    'Primal Clash': XY,
    'Roaring Skies': XY,
    'Ancient Origins': XY,
    'BREAKthrough': XY,
    'BREAKpoint': XY,
    'Generations': XY,
    'Fates Collide': XY,
    'Steam Siege': XY,
    'Evolutions': XY,

    # Sun & Moon (2017-2019)
    'Sun & Moon': SUN_MOON,
    'Guardians Rising': SUN_MOON,
    'Burning Shadows': SUN_MOON,
    'Crimson Invasion': SUN_MOON,
    'Ultra Prism': SUN_MOON,
    'Forbidden Light': SUN_MOON,
    'Celestial Storm': SUN_MOON,
    'Dragon Majesty': SUN_MOON,
    'Lost Thunder': SUN_MOON,
    'Team Up': SUN_MOON,
    'Detective Pikachu': SUN_MOON,
    'Unbroken Bonds': SUN_MOON,
    'Unified Minds': SUN_MOON,
    'Hidden Fates': SUN_MOON,
    'Cosmic Eclipse': SUN_MOON,

    # Sword & Shield (2020-2022)
    'Sword & Shield': SWORD_SHIELD,
    'Rebel Clash': SWORD_SHIELD,
    'Darkness Ablaze': SWORD_SHIELD,
    "Champion's Path": SWORD_SHIELD,
    'Vivid Voltage': SWORD_SHIELD,
    'Shining Fates': SWORD_SHIELD,
    'Battle Styles': SWORD_SHIELD,
    'Chilling Reign': SWORD_SHIELD,
    'Evolving Skies': SWORD_SHIELD,
    'Celebrations': SWORD_SHIELD,
    'Fusion Strike': SWORD_SHIELD,
    'Brilliant Stars': SWORD_SHIELD,
    'Astral Radiance': SWORD_SHIELD,
    'Pokémon GO': SWORD_SHIELD,
    'Lost Origin': SWORD_SHIELD,
    'Silver Tempest': SWORD_SHIELD,
    'Crown Zenith': SWORD_SHIELD,

    # Scarlet & Violet (2023-)
    'Scarlet & Violet': SCARLET_VIOLET,
    'Paldea Evolved': SCARLET_VIOLET,
    'Obsidian Flames': SCARLET_VIOLET,
    '151': SCARLET_VIOLET,
    'Paradox Rift': SCARLET_VIOLET,
    'Paldean Fates': SCARLET_VIOLET,
    'Temporal Forces': SCARLET_VIOLET,
    'Twilight Masquerade': SCARLET_VIOLET,
    'Shrouded Fable': SCARLET_VIOLET,
    'Stellar Crown': SCARLET_VIOLET,
    'Surging Sparks': SCARLET_VIOLET,
}

# 系列ID 特例 (不遵循系列名的特殊系列、各时代 Promo)
SET_ID_ERA_OVERRIDES = {
    'cel25': SWORD_SHIELD,     # Celebrations
    'mcd19': SUN_MOON,         # McDonald's 2019
    'tk1a': XY,                # XY Trainer Kit Latias
    'tk1b': XY,                # XY Trainer Kit Latios
    'sv3pt5': SCARLET_VIOLET,  # 151
    'sv8pt5': SCARLET_VIOLET,  # Prismatic Evolutions
    'zsv10pt5': SCARLET_VIOLET,  # Black Bolt
    'rsv10pt5': SCARLET_VIOLET,  # White Flare

    # Promo
    'sve': SCARLET_VIOLET,
    'svp': SCARLET_VIOLET,
    'swshp': SWORD_SHIELD,
    'smp': SUN_MOON,
    'xyp': XY,
    'bwp': BLACK_WHITE,
    'hsp': HGSS,
    'dpp': DP,
    'basep': WOTC,
}

# Legendary Collection 发售日 - WotC 时代反闪从此开始
LEGENDARY_COLLECTION_DATE = date(2002, 5, 24)

# 带精灵球/大师球图案反闪的特殊系列 -> 秘密稀有起始编号 (大于该编号即为秘密稀有)
SPECIAL_PATTERN_SETS = {
    'sv8pt5': 131,    # Prismatic Evolutions
    'zsv10pt5': 86,   # Black Bolt
    'rsv10pt5': 86,   # White Flare
}


def parse_release_date(value):
    """
    解析发售日期

    支持 'YYYY/MM/DD'、'YYYY-MM-DD'、ISO 时间戳以及 date/datetime 对象，
    无法解析时返回 None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    m = re.match(r'^\s*(\d{4})[/-](\d{1,2})[/-](\d{1,2})', str(value))
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def era_by_date(release_date):
    """按发售年份推断时代 (最后的兜底)"""
    d = parse_release_date(release_date)
    if d is None:
        return SWORD_SHIELD

    year = d.year
    if year >= 2023:
        return SCARLET_VIOLET
    if year >= 2020:
        return SWORD_SHIELD
    if year >= 2017:
        return SUN_MOON
    if year >= 2014:
        return XY
    if year >= 2011:
        return BLACK_WHITE
    if year >= 2010:
        return HGSS
    if year >= 2007:
        return DP
    if year >= 2003:
        return EX
    return WOTC


def detect_era(card):
    """
    判定卡牌时代

    顺序: 系列名 -> 系列ID 特例 -> 发售日期
    """
    card_set = card.get('set') or {}
    series = (card_set.get('series') or '').strip()
    set_id = (card_set.get('id') or '').lower()

    if series in SERIES_ERA_MAP:
        return SERIES_ERA_MAP[series]

    if set_id in SET_ID_ERA_OVERRIDES:
        return SET_ID_ERA_OVERRIDES[set_id]

    return era_by_date(card_set.get('release_date'))


def has_reverse_holo_default(era, release_date):
    """该时代/日期是否默认存在反闪"""
    if era == WOTC:
        d = parse_release_date(release_date)
        return d is not None and d >= LEGENDARY_COLLECTION_DATE
    return True


def special_pattern_set(set_id):
    """返回特殊图案系列的秘密稀有阈值，非特殊系列返回 None"""
    return SPECIAL_PATTERN_SETS.get((set_id or '').lower())
