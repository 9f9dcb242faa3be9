import csv
import io
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from services.exceptions import ValidationError

CSV_HEADER = ['Date', 'Description', 'Category', 'Amount']

class AnalysisService:
    """
    Agrégats calculés sur les transactions: solde, analyse par période, rapports
    """

    periods = ('week', 'month', 'year')

    def balance(self, transactions: Iterable) -> Dict[str, str]:
        """
        Calcule le solde, les revenus et les dépenses (chaînes à 2 décimales)
        """
        amounts = [t.amount for t in transactions]
        total = sum(amounts)
        income = sum(a for a in amounts if a > 0)
        expense = sum(-a for a in amounts if a < 0)

        return {
            'total': f'{total:.2f}',
            'income': f'{income:.2f}',
            'expense': f'{expense:.2f}'
        }

    def period_start(self, period: str, now: Optional[datetime] = None) -> datetime:
        """
        Début de la fenêtre d'analyse; une période inconnue retombe sur le mois
        """
        now = now or datetime.now()
        if period == 'week':
            return now - timedelta(days=7)
        if period == 'year':
            return datetime(now.year, 1, 1)
        return datetime(now.year, now.month, 1)

    def expenses_by_category(self, transactions: Iterable) -> Dict[str, float]:
        by_category = defaultdict(float)
        for transaction in transactions:
            if transaction.amount < 0:
                by_category[transaction.category] += abs(transaction.amount)
        return dict(by_category)

    def analyze_spending(self, transactions: List, period: str = 'month') -> Dict:
        """
        Analyse les dépenses d'une période déjà filtrée
        """
        category_spending = self.expenses_by_category(transactions)
        total_spent = sum(category_spending.values())

        # Tendance mensuelle, libellés du type "Jan 2025"
        monthly_trend = defaultdict(float)
        for transaction in transactions:
            if transaction.amount < 0:
                label = transaction.date.strftime('%b %Y')
                monthly_trend[label] += abs(transaction.amount)

        # Tri stable: en cas d'égalité la première catégorie rencontrée gagne
        ranked = sorted(category_spending.items(), key=lambda item: item[1], reverse=True)
        top_category = ranked[0] if ranked else None

        return {
            'categorySpending': category_spending,
            'monthlyTrend': dict(monthly_trend),
            'totalSpent': total_spent,
            'period': period,
            'topCategory': {
                'name': top_category[0],
                'amount': top_category[1]
            } if top_category else None,
            'transactionCount': len(transactions),
            'averageSpending': total_spent / len(category_spending) if category_spending else 0
        }

    def parse_report_range(self, start_date: str, end_date: str) -> Tuple[datetime, datetime]:
        """
        Convertit les bornes du rapport; une date de fin sans heure couvre toute la journée
        """
        try:
            start = datetime.fromisoformat(start_date)
            end = datetime.fromisoformat(end_date)
        except (TypeError, ValueError):
            raise ValidationError('Invalid date format, expected YYYY-MM-DD')

        if start.tzinfo is not None:
            start = start.astimezone().replace(tzinfo=None)
        if end.tzinfo is not None:
            end = end.astimezone().replace(tzinfo=None)
        if len(end_date.strip()) == 10:
            end = end + timedelta(days=1) - timedelta(microseconds=1)
        if end < start:
            raise ValidationError('endDate must not be before startDate')
        return start, end

    def build_report(self, transactions: List, start_date: str, end_date: str) -> Dict:
        """
        Rapport sur une période: résumé, répartition des dépenses, transactions
        """
        total_income = sum(t.amount for t in transactions if t.amount > 0)
        total_expense = sum(abs(t.amount) for t in transactions if t.amount < 0)

        return {
            'period': {'startDate': start_date, 'endDate': end_date},
            'summary': {
                'totalIncome': total_income,
                'totalExpense': total_expense,
                'netSavings': total_income - total_expense
            },
            'categoryBreakdown': self.expenses_by_category(transactions)
        }

    def report_csv(self, transactions: Iterable) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(CSV_HEADER)
        for t in transactions:
            writer.writerow([
                t.date.strftime('%Y-%m-%d'),
                t.text,
                t.category,
                self._format_amount(t.amount)
            ])
        return buffer.getvalue()

    @staticmethod
    def _format_amount(amount: float) -> str:
        # 100.0 -> "100", -4.5 -> "-4.5"
        if float(amount).is_integer():
            return str(int(amount))
        return repr(float(amount))
