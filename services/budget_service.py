import calendar
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

# Seuil d'alerte fixe, en pourcentage du budget
ALERT_THRESHOLD = 90

class BudgetService:
    """
    Calcule les dépenses réelles par budget et les alertes de dépassement
    """

    def __init__(self, alert_threshold: float = ALERT_THRESHOLD):
        self.alert_threshold = alert_threshold

    def current_period(self, now: Optional[datetime] = None) -> Tuple[str, int]:
        """Mois (nom complet, ex: "January") et année courants"""
        now = now or datetime.now()
        return calendar.month_name[now.month], now.year

    def month_range(self, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """Bornes [début, fin) du mois calendaire courant"""
        now = now or datetime.now()
        start = datetime(now.year, now.month, 1)
        if now.month == 12:
            end = datetime(now.year + 1, 1, 1)
        else:
            end = datetime(now.year, now.month + 1, 1)
        return start, end

    def spent_by_category(self, transactions: Iterable) -> Dict[str, float]:
        """
        Somme des montants absolus par catégorie (revenus compris, comme pour l'affichage)
        """
        spent = {}
        for transaction in transactions:
            spent[transaction.category] = spent.get(transaction.category, 0) + abs(transaction.amount)
        return spent

    def with_spent(self, budgets: Iterable, transactions: Iterable) -> List[Tuple[object, float]]:
        spent = self.spent_by_category(transactions)
        return [(budget, spent.get(budget.category, 0)) for budget in budgets]

    def percentage(self, spent: float, amount: float) -> float:
        return (spent / amount * 100) if amount > 0 else 0

    def alerts(self, budgets: Iterable, transactions: Iterable) -> List[Dict]:
        """
        Une alerte par budget dont la consommation atteint le seuil
        """
        alerts = []
        for budget, spent in self.with_spent(budgets, transactions):
            percentage = self.percentage(spent, budget.amount)
            if percentage >= self.alert_threshold:
                alerts.append({
                    'category': budget.category,
                    'budget': budget.amount,
                    'spent': spent,
                    'percentage': f'{percentage:.1f}',
                    'message': f"You've used {percentage:.1f}% of your {budget.category} budget!"
                })
        return alerts
