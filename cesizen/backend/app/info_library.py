from __future__ import annotations

import re
import unicodedata
from typing import Iterable, List, Optional

from .stress_engine import RiskTier

# Seed articles for the information library. ``tiers`` lists the stress levels
# an article is recommended for.
ARTICLES = [
    {
        "id": 1,
        "title": "5 techniques de respiration pour réduire le stress",
        "slug": "5-techniques-de-respiration-pour-reduire-le-stress",
        "summary": "Découvrez des méthodes de respiration efficaces pour calmer l'anxiété et améliorer votre bien-être quotidien.",
        "content": (
            "La respiration est le levier le plus direct sur le système nerveux. "
            "Respiration 4-7-8, cohérence cardiaque, respiration carrée, respiration abdominale "
            "et respiration alternée se pratiquent en quelques minutes, assis ou allongé."
        ),
        "category": "Stress",
        "tiers": [RiskTier.LOW, RiskTier.MODERATE, RiskTier.HIGH],
    },
    {
        "id": 2,
        "title": "La méditation de pleine conscience : guide pour débutants",
        "slug": "la-meditation-de-pleine-conscience-guide-pour-debutants",
        "summary": "Apprenez les bases de la méditation mindfulness et ses effets positifs sur la gestion du stress et de l'anxiété.",
        "content": (
            "La pleine conscience consiste à porter attention au moment présent sans jugement. "
            "Commencez par cinq minutes par jour, concentré sur le souffle, puis allongez progressivement la durée."
        ),
        "category": "Méditation",
        "tiers": [RiskTier.LOW, RiskTier.MODERATE],
    },
    {
        "id": 3,
        "title": "Améliorer son sommeil naturellement : 7 habitudes efficaces",
        "slug": "ameliorer-son-sommeil-naturellement-7-habitudes-efficaces",
        "summary": "Découvrez comment optimiser votre qualité de sommeil sans médicaments grâce à des routines simples et naturelles.",
        "content": (
            "Des horaires réguliers, une chambre fraîche et sombre, moins d'écrans le soir, "
            "pas de caféine après 14h, une activité physique en journée, un dîner léger "
            "et un rituel de détente avant le coucher."
        ),
        "category": "Sommeil",
        "tiers": [RiskTier.MODERATE, RiskTier.HIGH],
    },
]


def slugify(title: str) -> str:
    """Lowercase ASCII slug: accents stripped, runs of other characters become one dash."""
    ascii_title = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_title.lower())
    return slug.strip("-")


def parse_tiers(value: Optional[str]) -> List[RiskTier]:
    known = {tier.value: tier for tier in RiskTier}
    return [known[item.strip()] for item in (value or "").split(",") if item.strip() in known]


def format_tiers(tiers: Iterable[RiskTier]) -> str:
    selected = set(tiers)
    return ",".join(tier.value for tier in RiskTier if tier in selected)
