"""
Categorization Rule Engine
==========================

Tags uncategorized, unreconciled bank debits using ordered keyword rules.
The first rule whose keyword appears in the description wins.
"""

from dataclasses import replace
from typing import Optional, Union

from aws_lambda_powertools import Logger

from models import BankTransaction, CategorizationRule, ExpenseCategory
from utils.document_store import WriteBatch, CATEGORIZATION_RULES

from .commands import Command, save_transactions
from .state import FinanceState

logger = Logger()


def is_rule_candidate(txn: BankTransaction) -> bool:
    return not txn.is_reconciled and txn.amount < 0 and txn.category is None


def first_matching_rule(description: str, rules: list[CategorizationRule]) -> Optional[CategorizationRule]:
    for rule in rules:
        if rule.matches(description):
            return rule
    return None


def categorize_by_rules(
    transactions: list[BankTransaction],
    rules: list[CategorizationRule],
) -> list[BankTransaction]:
    """Assign categories in place and return the transactions that changed."""
    changed = []
    for txn in transactions:
        if not is_rule_candidate(txn):
            continue
        rule = first_matching_rule(txn.description, rules)
        if rule is not None:
            txn.category = rule.category
            changed.append(txn)
    return changed


def apply_rules(transactions: list[BankTransaction], rules: list[CategorizationRule]) -> int:
    """Categorize matching transactions; returns how many were categorized."""
    return len(categorize_by_rules(transactions, rules))


def coerce_category(value: Union[str, ExpenseCategory, None]) -> Optional[ExpenseCategory]:
    """None and "Uncategorized" both mean clear the category."""
    if value is None or value == "":
        return None
    category = ExpenseCategory(value)
    if category == ExpenseCategory.UNCATEGORIZED:
        return None
    return category


class ApplyRulesCommand(Command):
    name = "apply_rules"

    def apply(self, state: FinanceState, writes: WriteBatch) -> int:
        if not state.rules:
            logger.info("No categorization rules to apply")
            return 0
        changed = categorize_by_rules(state.transactions, state.rules)
        if changed:
            save_transactions(writes, changed)
        logger.info(f"Applied rules and categorized {len(changed)} transactions")
        return len(changed)


class SetCategoryCommand(Command):
    """Manual override; never touches reconciliation state."""

    name = "set_category"

    def __init__(self, transaction_id: str, category: Union[str, ExpenseCategory, None]):
        self.transaction_id = transaction_id
        self.category = coerce_category(category)

    def apply(self, state: FinanceState, writes: WriteBatch) -> bool:
        txn = state.find_transaction(self.transaction_id)
        if txn is None:
            return False
        txn.category = self.category
        save_transactions(writes, [txn])
        return True


class SaveRulesCommand(Command):
    """Replace the rule list; order is preserved as given."""

    name = "save_rules"

    def __init__(self, rules: list[CategorizationRule]):
        self.rules = [replace(rule, position=position) for position, rule in enumerate(rules)]

    def apply(self, state: FinanceState, writes: WriteBatch) -> int:
        kept_ids = {rule.id for rule in self.rules}
        removed = [rule.id for rule in state.rules if rule.id not in kept_ids]
        state.rules = list(self.rules)
        writes.save(CATEGORIZATION_RULES, [rule.to_dict() for rule in self.rules])
        if removed:
            writes.delete(CATEGORIZATION_RULES, removed)
        return len(self.rules)
