"""
Static blacklist of terms that are never promotional codes.

Terms are stored upper-case; lookups normalize the candidate the same way.
"""

# Generic promotional nouns and call-to-action verbs
PROMO_TERMS = {
    "CODE", "CODES", "PROMO", "PROMOCODE", "COUPON", "COUPONS", "DISCOUNT",
    "DISCOUNTS", "BONUS", "FREE", "SAVE", "SAVING", "SAVINGS", "DEAL", "DEALS",
    "OFFER", "OFFERS", "SALE", "SPECIAL", "REDEEM", "APPLY", "ENTER", "TYPE",
    "CLAIM", "GET", "USE", "INPUT", "CHECKOUT", "CASHBACK", "DISCLAIMER",
    "SPONSOR", "SPONSORED", "SPONSORS", "AFFILIATE", "AFFILIATES", "PARTNER",
    "PARTNERS", "LINK", "LINKS", "HERE", "BELOW", "ABOVE",
}

# Platform and social-media names
PLATFORM_TERMS = {
    "YOUTUBE", "REDDIT", "INSTAGRAM", "TWITTER", "FACEBOOK", "TIKTOK",
    "DISCORD", "LINKEDIN", "SNAPCHAT", "TWITCH", "PATREON", "SPOTIFY",
    "HTTP", "HTTPS", "WWW", "COM", "ORG", "NET",
}

# Creator boilerplate
CREATOR_TERMS = {
    "SUBSCRIBE", "LIKE", "COMMENT", "SHARE", "FOLLOW", "JOIN", "NOTIFICATION",
    "NOTIFICATIONS", "BELL", "CHANNEL", "VIDEO", "VIDEOS", "CONTENT", "WATCH",
    "CLICK", "CHECK", "MORE", "INFO", "HELP", "SUPPORT", "MUSIC", "AUDIO",
    "SOUND", "INTRO", "OUTRO", "DESCRIPTION", "MERCH", "STORE", "SHOP",
    "EPISODE", "PODCAST", "STREAM", "LIVE", "LUCK", "SYSTEM",
}

# Common English words long enough to slip past the length rule
COMMON_WORDS = {
    "ABOUT", "AFTER", "AGAIN", "ALSO", "BECAUSE", "BEEN", "BEFORE", "BEING",
    "BEST", "BETTER", "BOTH", "COULD", "DOES", "DOING", "DOWN", "EACH",
    "EVEN", "EVERY", "FIRST", "FROM", "GOING", "GOOD", "GREAT", "GUYS",
    "HAVE", "INTO", "JUST", "KNOW", "LAST", "LIKE", "LITTLE", "LOOK", "MAKE",
    "MANY", "MUCH", "MUST", "NEED", "NEVER", "NEXT", "ONLY", "ORDER",
    "OTHER", "OVER", "PEOPLE", "REALLY", "RIGHT", "SAME", "SHOULD", "SINCE",
    "SOME", "STILL", "SUCH", "TAKE", "THAN", "THANK", "THANKS", "THAT",
    "THEIR", "THEM", "THEN", "THERE", "THESE", "THEY", "THING", "THINGS",
    "THINK", "THIS", "THOSE", "THROUGH", "TODAY", "TOTAL", "UNTIL", "VERY",
    "WANT", "WELL", "WERE", "WHAT", "WHEN", "WHERE", "WHICH", "WHILE",
    "WILL", "WITH", "WORK", "WOULD", "YEAR", "YOUR", "YOURS", "FIRSTTIME",
    "WEBSITE", "ONLINE", "PURCHASE", "PRODUCT", "PRODUCTS", "PRICE",
}

BLACKLISTED_TERMS = frozenset(PROMO_TERMS | PLATFORM_TERMS | CREATOR_TERMS | COMMON_WORDS)

# Link domains that are never kept, regardless of URL shape
LINK_DENYLIST_PATTERNS = [
    r"(?i)(?:^|[/.])spam\.com(?:[/:?#]|$)",
    r"(?i)(?:^|[/.])malicious\.site(?:[/:?#]|$)",
]
