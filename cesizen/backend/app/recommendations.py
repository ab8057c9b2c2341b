from __future__ import annotations

import random
from typing import Dict, List, Optional, Union

from .info_library import ARTICLES
from .stress_engine import RiskTier

BREATHING_EXERCISES = [
    {
        "id": 1,
        "name": "Respiration 4-7-8",
        "description": "Technique de respiration du Dr Andrew Weil pour réduire l'anxiété et faciliter l'endormissement",
        "type": "relaxation",
        "difficulty": "débutant",
        "duration": 5,
        "steps": [
            {"name": "Inspiration", "duration": 4, "instruction": "Inspirez lentement et profondément par le nez"},
            {"name": "Rétention", "duration": 7, "instruction": "Retenez votre souffle"},
            {"name": "Expiration", "duration": 8, "instruction": "Expirez complètement par la bouche en faisant un son doux"},
        ],
        "benefits": ["Diminution de l'anxiété", "Aide à l'endormissement", "Réduction de la tension artérielle"],
    },
    {
        "id": 2,
        "name": "Respiration carrée",
        "description": "Technique équilibrée pour calmer le système nerveux rapidement",
        "type": "équilibrage",
        "difficulty": "débutant",
        "duration": 3,
        "steps": [
            {"name": "Inspiration", "duration": 4, "instruction": "Inspirez lentement par le nez"},
            {"name": "Rétention", "duration": 4, "instruction": "Retenez votre souffle"},
            {"name": "Expiration", "duration": 4, "instruction": "Expirez lentement par le nez"},
            {"name": "Pause", "duration": 4, "instruction": "Restez poumons vides"},
        ],
        "benefits": ["Calme rapide", "Meilleure concentration"],
    },
    {
        "id": 3,
        "name": "Respiration cohérence cardiaque 5-5",
        "description": "Synchronise le rythme cardiaque et la respiration",
        "type": "équilibrage",
        "difficulty": "débutant",
        "duration": 5,
        "steps": [
            {"name": "Inspiration", "duration": 5, "instruction": "Inspirez lentement par le nez en gonflant le ventre"},
            {"name": "Expiration", "duration": 5, "instruction": "Expirez lentement par la bouche ou le nez"},
        ],
        "benefits": ["Régulation du stress", "Équilibre émotionnel"],
    },
    {
        "id": 4,
        "name": "Respiration diaphragmatique",
        "description": "Respiration abdominale profonde pour relâcher les tensions",
        "type": "relaxation",
        "difficulty": "débutant",
        "duration": 5,
        "steps": [
            {"name": "Inspiration", "duration": 4, "instruction": "Inspirez profondément par le nez en gonflant le ventre"},
            {"name": "Expiration", "duration": 6, "instruction": "Expirez lentement par la bouche en rentrant le ventre"},
        ],
        "benefits": ["Relâchement musculaire", "Meilleure oxygénation"],
    },
    {
        "id": 5,
        "name": "Ujjayi (Respiration océanique)",
        "description": "Respiration yogique avec une légère contraction de la gorge",
        "type": "yogique",
        "difficulty": "intermédiaire",
        "duration": 10,
        "steps": [
            {"name": "Inspiration", "duration": 5, "instruction": "Inspirez lentement par le nez en contractant légèrement la gorge"},
            {"name": "Expiration", "duration": 5, "instruction": "Expirez par le nez en maintenant la légère contraction de la gorge"},
        ],
        "benefits": ["Apaisement mental", "Concentration"],
    },
    {
        "id": 6,
        "name": "Respiration alternée (Nadi Shodhana)",
        "description": "Technique yogique d'alternance des narines pour équilibrer les deux hémisphères cérébraux",
        "type": "yogique",
        "difficulty": "intermédiaire",
        "duration": 10,
        "steps": [
            {"name": "Inspiration gauche", "duration": 4, "instruction": "Inspirez lentement par la narine gauche"},
            {"name": "Expiration droite", "duration": 4, "instruction": "Expirez lentement par la narine droite"},
            {"name": "Inspiration droite", "duration": 4, "instruction": "Inspirez lentement par la narine droite"},
            {"name": "Expiration gauche", "duration": 4, "instruction": "Expirez lentement par la narine gauche"},
        ],
        "benefits": ["Équilibre", "Clarté mentale"],
    },
    {
        "id": 7,
        "name": "Respiration énergisante (Kapalabhati)",
        "description": "Technique de purification yogique avec expirations rapides et forcées",
        "type": "énergisant",
        "difficulty": "avancé",
        "duration": 3,
        "steps": [
            {"name": "Inspiration passive", "duration": 1, "instruction": "Inspirez passivement par le nez"},
            {"name": "Expiration active", "duration": 1, "instruction": "Expirez rapidement et activement en contractant l'abdomen"},
        ],
        "benefits": ["Énergie", "Vigilance"],
    },
]

EXERCISE_TARGETS: Dict[RiskTier, Dict[str, List[str]]] = {
    RiskTier.LOW: {
        "difficulties": ["débutant", "intermédiaire"],
        "types": ["équilibrage", "relaxation", "yogique"],
    },
    RiskTier.MODERATE: {
        "difficulties": ["débutant", "intermédiaire"],
        "types": ["relaxation", "équilibrage", "yogique"],
    },
    RiskTier.HIGH: {
        "difficulties": ["débutant"],
        "types": ["relaxation", "équilibrage"],
    },
}

FALLBACK_RECOMMENDATIONS = [
    {
        "id": "fallback-articles",
        "type": "article",
        "title": "Explorer nos articles",
        "description": "Conseils et informations sur le bien-être.",
        "path": "/api/info",
    },
    {
        "id": "fallback-exercises",
        "type": "exercise",
        "title": "Découvrir les exercices de respiration",
        "description": "Techniques pour la relaxation et la gestion du stress.",
        "path": "/api/breathing",
    },
]

LEVEL_ALIASES = {
    "faible": RiskTier.LOW,
    "faible risque": RiskTier.LOW,
    "low": RiskTier.LOW,
    "modéré": RiskTier.MODERATE,
    "modere": RiskTier.MODERATE,
    "risque modéré": RiskTier.MODERATE,
    "moderate": RiskTier.MODERATE,
    "élevé": RiskTier.HIGH,
    "eleve": RiskTier.HIGH,
    "risque élevé": RiskTier.HIGH,
    "high": RiskTier.HIGH,
}


def parse_stress_level(value: Union[RiskTier, str, None]) -> RiskTier:
    if isinstance(value, RiskTier):
        return value
    return LEVEL_ALIASES.get((value or "").strip().lower(), RiskTier.MODERATE)


def get_exercise(exercise_id: int) -> Optional[dict]:
    for exercise in BREATHING_EXERCISES:
        if exercise["id"] == exercise_id:
            return exercise
    return None


def matching_exercises(tier: RiskTier, pool: Optional[List[dict]] = None) -> List[dict]:
    targets = EXERCISE_TARGETS[tier]
    return [
        exercise
        for exercise in (BREATHING_EXERCISES if pool is None else pool)
        if exercise["difficulty"] in targets["difficulties"] and exercise["type"] in targets["types"]
    ]


def matching_articles(tier: RiskTier, pool: Optional[List[dict]] = None) -> List[dict]:
    return [article for article in (ARTICLES if pool is None else pool) if tier in article["tiers"]]


def recommend(
    stress_level: Union[RiskTier, str, None] = None,
    limit: int = 4,
    rng: Optional[random.Random] = None,
    articles: Optional[List[dict]] = None,
    exercises: Optional[List[dict]] = None,
) -> List[dict]:
    rng = rng or random.Random()
    tier = parse_stress_level(stress_level)
    limit = max(1, int(limit))
    per_type = max(1, limit // 2)

    article_pool = matching_articles(tier, articles)
    exercise_pool = matching_exercises(tier, exercises)
    picked_articles = rng.sample(article_pool, min(per_type, len(article_pool)))
    picked_exercises = rng.sample(exercise_pool, min(per_type, len(exercise_pool)))

    recommendations = [
        {
            "id": str(article["id"]),
            "type": "article",
            "title": article["title"],
            "description": article["summary"],
            "path": f"/api/info/{article['id']}",
        }
        for article in picked_articles
    ]
    recommendations.extend(
        {
            "id": str(exercise["id"]),
            "type": "exercise",
            "title": exercise["name"],
            "description": exercise["description"],
            "path": f"/api/breathing/{exercise['id']}",
        }
        for exercise in picked_exercises
    )
    rng.shuffle(recommendations)
    recommendations = recommendations[:limit]
    if not recommendations:
        return [dict(item) for item in FALLBACK_RECOMMENDATIONS]
    return recommendations
