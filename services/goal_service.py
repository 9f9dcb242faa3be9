from typing import Dict

# Champs modifiables via PUT /goals/:id (nom d'attribut du modèle)
UPDATABLE_FIELDS = ('title', 'target_amount', 'current_amount', 'deadline', 'category', 'color')

class GoalService:
    """Règles de progression des objectifs d'épargne"""

    def merge_update(self, goal, patch: Dict):
        """
        Applique une mise à jour partielle.

        Une valeur absente ou "fausse" (0, chaîne vide) conserve l'ancienne valeur:
        les clients existants envoient le formulaire complet et comptent sur ce
        comportement. Il n'est donc pas possible de remettre currentAmount à 0 ici.
        """
        for field in UPDATABLE_FIELDS:
            value = patch.get(field)
            if value:
                setattr(goal, field, value)
        self.check_completion(goal)
        return goal

    def check_completion(self, goal):
        """
        Passe l'objectif à l'état terminé dès que la cible est atteinte;
        le surplus est abandonné. Un objectif terminé ne redevient jamais actif.
        """
        if goal.current_amount >= goal.target_amount:
            goal.is_completed = True
            goal.current_amount = goal.target_amount
        return goal
