"""Industry-specific copywriting profiles used to specialise prompts.

Profiles are written in French, the language the generated ads are in.
Unknown or empty industry names resolve to the ``default`` profile.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class IndustryProfile:
    persona: str
    rules: List[str]
    action_words: List[str]
    urgency_tactics: List[str]
    value_propositions: List[str]
    calls_to_action: List[str]


INDUSTRY_PROFILES: Dict[str, IndustryProfile] = {
    "e-commerce": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire e-commerce avec une "
            "spécialisation dans la conversion en ligne et l'optimisation des ventes."
        ),
        rules=[
            "Mettre l'accent sur la disponibilité immédiate",
            "Inclure des éléments de réassurance (livraison, retours)",
            "Créer un sentiment d'urgence avec les stocks ou promotions",
            "Valoriser le rapport qualité-prix",
        ],
        action_words=["Achetez", "Commandez", "Profitez", "Découvrez", "Économisez"],
        urgency_tactics=["Stock limité", "Offre limitée", "Livraison rapide", "Promo exclusive"],
        value_propositions=["Meilleur prix", "Livraison gratuite", "Qualité garantie", "Satisfaction client"],
        calls_to_action=["Commandez maintenant", "Achetez en ligne", "Profitez de l'offre", "Découvrez la collection"],
    ),
    "services": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire pour les services professionnels "
            "avec une expertise dans la génération de leads qualifiés."
        ),
        rules=[
            "Mettre l'accent sur l'expertise et l'expérience",
            "Inclure des éléments de confiance et crédibilité",
            "Valoriser la personnalisation du service",
            "Créer de la proximité et de la disponibilité",
        ],
        action_words=["Contactez", "Demandez", "Consultez", "Planifiez", "Réservez"],
        urgency_tactics=["Consultation gratuite", "Devis rapide", "Expertise locale", "Disponible immédiatement"],
        value_propositions=["Expert certifié", "Service personnalisé", "Satisfaction garantie", "Devis gratuit"],
        calls_to_action=["Contactez-nous", "Demandez un devis", "Réservez votre consultation", "Planifiez un RDV"],
    ),
    "restaurant": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire pour la restauration avec une "
            "spécialisation dans l'attraction de clientèle locale."
        ),
        rules=[
            "Mettre l'accent sur la fraîcheur et la qualité des produits",
            "Créer l'envie avec des descriptions appétissantes",
            "Valoriser l'expérience culinaire et l'ambiance",
            "Inclure des éléments de proximité et tradition",
        ],
        action_words=["Savourez", "Dégustez", "Réservez", "Découvrez", "Goûtez"],
        urgency_tactics=["Menu du jour", "Spécialité maison", "Produits frais", "Réservation conseillée"],
        value_propositions=["Cuisine authentique", "Produits frais", "Ambiance chaleureuse", "Chef expérimenté"],
        calls_to_action=["Réservez maintenant", "Découvrez la carte", "Venez déguster", "Savourez l'expérience"],
    ),
    "immobilier": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire immobilier avec une expertise "
            "dans la génération de prospects qualifiés."
        ),
        rules=[
            "Mettre l'accent sur l'emplacement et les caractéristiques uniques",
            "Créer de l'émotion avec le potentiel du lieu de vie",
            "Valoriser l'investissement et l'opportunité",
            "Inclure des éléments de rareté et d'exclusivité",
        ],
        action_words=["Visitez", "Découvrez", "Investissez", "Contactez", "Explorez"],
        urgency_tactics=["Visite exclusive", "Opportunité rare", "Prix attractif", "Disponible immédiatement"],
        value_propositions=["Emplacement privilégié", "Bien d'exception", "Investissement sûr", "Cadre de vie idéal"],
        calls_to_action=["Planifiez une visite", "Contactez l'agent", "Découvrez le bien", "Demandez plus d'infos"],
    ),
    "sante": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire pour le secteur de la santé "
            "avec une approche éthique et rassurante."
        ),
        rules=[
            "Mettre l'accent sur le bien-être et la qualité de vie",
            "Inclure des éléments de réassurance et professionnalisme",
            "Valoriser l'expertise médicale et la technologie",
            "Créer de la confiance avec la discrétion et l'écoute",
        ],
        action_words=["Consultez", "Prenez soin", "Améliorez", "Prévenez", "Soignez"],
        urgency_tactics=["RDV rapide", "Prévention importante", "Santé prioritaire", "Consultation disponible"],
        value_propositions=["Expertise médicale", "Soins personnalisés", "Technologie avancée", "Équipe qualifiée"],
        calls_to_action=["Prenez RDV", "Consultez un spécialiste", "Contactez le cabinet", "Planifiez votre visite"],
    ),
    "education": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire pour l'éducation avec un focus "
            "sur le développement personnel et professionnel."
        ),
        rules=[
            "Mettre l'accent sur l'amélioration et la progression",
            "Valoriser l'acquisition de compétences et connaissances",
            "Créer de l'aspiration avec les résultats obtenus",
            "Inclure des éléments de flexibilité et accessibilité",
        ],
        action_words=["Apprenez", "Formez-vous", "Développez", "Maîtrisez", "Progressez"],
        urgency_tactics=["Formation limitée", "Inscription ouverte", "Début imminent", "Places disponibles"],
        value_propositions=["Formation certifiante", "Experts reconnus", "Méthode éprouvée", "Suivi personnalisé"],
        calls_to_action=["Inscrivez-vous", "Commencez votre formation", "Découvrez le programme", "Demandez des infos"],
    ),
    "technologie": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire tech avec une spécialisation "
            "dans l'innovation et les solutions digitales."
        ),
        rules=[
            "Mettre l'accent sur l'innovation et la performance",
            "Valoriser l'efficacité et le gain de temps",
            "Créer de l'exclusivité avec la technologie avancée",
            "Inclure des éléments de simplicité d'utilisation",
        ],
        action_words=["Optimisez", "Automatisez", "Simplifiez", "Innovez", "Transformez"],
        urgency_tactics=["Technologie avancée", "Solution unique", "Performance optimale", "Évolution nécessaire"],
        value_propositions=["Innovation leader", "Solution complète", "Performance garantie", "Support expert"],
        calls_to_action=["Testez la solution", "Demandez une démo", "Découvrez l'innovation", "Optimisez maintenant"],
    ),
    "finance": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire financière avec une approche "
            "de confiance et de sécurité."
        ),
        rules=[
            "Mettre l'accent sur la sécurité et la fiabilité",
            "Valoriser l'expertise et l'accompagnement personnalisé",
            "Créer de la confiance avec la transparence",
            "Inclure des éléments de performance et rentabilité",
        ],
        action_words=["Investissez", "Économisez", "Planifiez", "Sécurisez", "Optimisez"],
        urgency_tactics=["Opportunité d'investissement", "Conseil personnalisé", "Analyse gratuite", "Expertise reconnue"],
        value_propositions=["Sécurité garantie", "Conseil expert", "Performance optimisée", "Accompagnement personnalisé"],
        calls_to_action=["Contactez un conseiller", "Demandez une analyse", "Planifiez votre avenir", "Optimisez vos finances"],
    ),
    "default": IndustryProfile(
        persona=(
            "Tu es un expert en rédaction publicitaire Google Ads avec 10 ans "
            "d'expérience et une approche universelle."
        ),
        rules=[
            "Adapter le ton au secteur d'activité du client",
            "Créer un sentiment d'urgence ou d'opportunité",
            "Mettre en avant la valeur ajoutée unique",
            "Utiliser des mots d'action forts",
        ],
        action_words=["Découvrez", "Profitez", "Contactez", "Essayez", "Bénéficiez"],
        urgency_tactics=["Offre limitée", "Opportunité unique", "Disponible maintenant", "Action rapide"],
        value_propositions=["Qualité supérieure", "Service expert", "Solution adaptée", "Résultats garantis"],
        calls_to_action=["Contactez-nous", "Découvrez l'offre", "Profitez maintenant", "Demandez plus d'infos"],
    ),
}

_ALIASES: Dict[str, str] = {
    "ecommerce": "e-commerce",
    "e-commerce": "e-commerce",
    "commerce": "e-commerce",
    "vente en ligne": "e-commerce",
    "boutique": "e-commerce",
    "service": "services",
    "services": "services",
    "consulting": "services",
    "conseil": "services",
    "restaurant": "restaurant",
    "restauration": "restaurant",
    "café": "restaurant",
    "bar": "restaurant",
    "alimentation": "restaurant",
    "immobilier": "immobilier",
    "real estate": "immobilier",
    "propriété": "immobilier",
    "santé": "sante",
    "sante": "sante",
    "health": "sante",
    "médical": "sante",
    "dentaire": "sante",
    "pharmacie": "sante",
    "formation": "education",
    "éducation": "education",
    "education": "education",
    "école": "education",
    "université": "education",
    "cours": "education",
    "tech": "technologie",
    "technologie": "technologie",
    "it": "technologie",
    "software": "technologie",
    "digital": "technologie",
    "banque": "finance",
    "assurance": "finance",
    "finance": "finance",
    "investissement": "finance",
}


def normalize_industry(industry: Optional[str]) -> str:
    """Map a free-text industry name to a key of :data:`INDUSTRY_PROFILES`."""
    if not industry:
        return "default"
    return _ALIASES.get(industry.lower().strip(), "default")


def get_industry_profile(industry: Optional[str]) -> IndustryProfile:
    return INDUSTRY_PROFILES[normalize_industry(industry)]


def get_industry_suggestions(industry: Optional[str]) -> Dict[str, List[str]]:
    profile = get_industry_profile(industry)
    return {
        "action_words": list(profile.action_words),
        "urgency_tactics": list(profile.urgency_tactics),
        "value_propositions": list(profile.value_propositions),
    }


def supported_industries() -> List[str]:
    return [k for k in INDUSTRY_PROFILES if k != "default"]
