from __future__ import annotations

from typing import Dict, Iterable, List

from .stress_engine import EventCategory, StressEvent

# Holmes & Rahe social readjustment scale, French labels.
HOLMES_RAHE_EVENTS = [
    {"label": "Décès du conjoint", "description": "Perte du conjoint par décès", "weight": 100, "category": "Familial"},
    {"label": "Divorce", "description": "Dissolution légale du mariage", "weight": 73, "category": "Familial"},
    {"label": "Séparation conjugale", "description": "Séparation du conjoint", "weight": 65, "category": "Familial"},
    {"label": "Emprisonnement", "description": "Période d'incarcération", "weight": 63, "category": "Personnel"},
    {"label": "Décès d'un proche parent", "description": "Perte d'un membre de la famille proche", "weight": 63, "category": "Familial"},
    {"label": "Blessure ou maladie personnelle", "description": "Problème de santé majeur", "weight": 53, "category": "Santé"},
    {"label": "Mariage", "description": "Union maritale", "weight": 50, "category": "Familial"},
    {"label": "Licenciement", "description": "Perte d'emploi", "weight": 47, "category": "Professionnel"},
    {"label": "Réconciliation conjugale", "description": "Réconciliation avec le conjoint", "weight": 45, "category": "Familial"},
    {"label": "Retraite", "description": "Fin de la carrière professionnelle", "weight": 45, "category": "Professionnel"},
    {"label": "Changement de santé d'un membre de la famille", "description": "Problème de santé d'un proche", "weight": 44, "category": "Familial"},
    {"label": "Grossesse", "description": "Attente d'un enfant", "weight": 40, "category": "Familial"},
    {"label": "Difficultés sexuelles", "description": "Problèmes dans la vie sexuelle", "weight": 39, "category": "Personnel"},
    {"label": "Arrivée d'un nouvel enfant", "description": "Naissance ou adoption", "weight": 39, "category": "Familial"},
    {"label": "Réajustement professionnel", "description": "Changement majeur au travail", "weight": 39, "category": "Professionnel"},
    {"label": "Changement de situation financière", "description": "Amélioration ou détérioration significative", "weight": 38, "category": "Financier"},
    {"label": "Décès d'un ami proche", "description": "Perte d'un ami important", "weight": 37, "category": "Personnel"},
    {"label": "Changement de métier", "description": "Changement de type de travail", "weight": 36, "category": "Professionnel"},
    {"label": "Changement dans les relations avec le conjoint", "description": "Plus ou moins de discussions", "weight": 35, "category": "Familial"},
    {"label": "Contraction d'un prêt important", "description": "Prêt immobilier ou professionnel", "weight": 31, "category": "Financier"},
    {"label": "Saisie d'hypothèque ou de prêt", "description": "Impossibilité de rembourser", "weight": 30, "category": "Financier"},
    {"label": "Changement de responsabilités au travail", "description": "Promotion, rétrogradation, mutation", "weight": 29, "category": "Professionnel"},
    {"label": "Départ d'un enfant du foyer", "description": "Enfant quittant la maison", "weight": 29, "category": "Familial"},
    {"label": "Problèmes avec la belle-famille", "description": "Conflits familiaux", "weight": 29, "category": "Familial"},
    {"label": "Réussite personnelle marquante", "description": "Accomplissement personnel important", "weight": 28, "category": "Personnel"},
    {"label": "Conjoint commençant ou arrêtant de travailler", "description": "Changement professionnel du conjoint", "weight": 26, "category": "Familial"},
    {"label": "Début ou fin d'études", "description": "Entrée ou sortie du système éducatif", "weight": 26, "category": "Personnel"},
    {"label": "Changement de conditions de vie", "description": "Modification du confort ou de l'environnement", "weight": 25, "category": "Personnel"},
    {"label": "Révision des habitudes personnelles", "description": "Changement de mode de vie", "weight": 24, "category": "Personnel"},
    {"label": "Difficultés avec un supérieur", "description": "Problèmes avec un responsable au travail", "weight": 23, "category": "Professionnel"},
    {"label": "Changement d'horaires ou de conditions de travail", "description": "Modification du cadre professionnel", "weight": 20, "category": "Professionnel"},
    {"label": "Déménagement", "description": "Changement de lieu de résidence", "weight": 20, "category": "Personnel"},
    {"label": "Changement d'école", "description": "Nouvel établissement scolaire", "weight": 20, "category": "Personnel"},
    {"label": "Changement dans les loisirs", "description": "Modification des activités récréatives", "weight": 19, "category": "Personnel"},
    {"label": "Changement dans les activités religieuses", "description": "Augmentation ou diminution", "weight": 19, "category": "Personnel"},
    {"label": "Changement dans les activités sociales", "description": "Modification des habitudes sociales", "weight": 18, "category": "Personnel"},
    {"label": "Petit emprunt", "description": "Crédit à la consommation", "weight": 17, "category": "Financier"},
    {"label": "Changement dans les habitudes de sommeil", "description": "Modification du rythme ou de la qualité", "weight": 16, "category": "Personnel"},
    {"label": "Changement dans les habitudes alimentaires", "description": "Modification du régime alimentaire", "weight": 15, "category": "Personnel"},
    {"label": "Vacances", "description": "Période de congés", "weight": 13, "category": "Personnel"},
    {"label": "Fêtes de fin d'année", "description": "Période des festivités", "weight": 12, "category": "Personnel"},
    {"label": "Petite infraction légale", "description": "Contravention, amende", "weight": 11, "category": "Personnel"},
]

CATEGORY_ORDER = {category: index for index, category in enumerate(EventCategory)}


def parse_category(value: object) -> EventCategory:
    if isinstance(value, EventCategory):
        return value
    try:
        return EventCategory(str(value or "").strip())
    except ValueError:
        return EventCategory.AUTRE


def build_catalog(events: Iterable[StressEvent]) -> Dict[int, StressEvent]:
    catalog: Dict[int, StressEvent] = {}
    for event in events:
        if event.id in catalog:
            raise ValueError(f"Duplicate stress event id: {event.id}")
        catalog[event.id] = event
    return catalog


def default_events() -> List[StressEvent]:
    return [
        StressEvent(
            id=index,
            label=item["label"],
            weight=item["weight"],
            category=parse_category(item["category"]),
            description=item["description"],
        )
        for index, item in enumerate(HOLMES_RAHE_EVENTS, start=1)
    ]


def default_catalog() -> Dict[int, StressEvent]:
    return build_catalog(default_events())


def order_for_questionnaire(events: Iterable[StressEvent]) -> List[StressEvent]:
    return sorted(events, key=lambda e: (CATEGORY_ORDER[e.category], -e.weight, e.label))
