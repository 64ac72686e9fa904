import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from finance_tracker.core.config import Settings
from finance_tracker.core.errors import UpstreamFailure
from finance_tracker.models.savings_goal import Contribution, SavingsGoal
from finance_tracker.utils.dates import DateRange

logger = logging.getLogger(__name__)

EMAIL_INDEX = "email-index"
GOOGLE_ID_INDEX = "google-id-index"
EMAIL_CLAIM_PREFIX = "email#"

_serializer = TypeSerializer()


def email_claim_key(email: str) -> str:
    return f"{EMAIL_CLAIM_PREFIX}{email}"


def _serialize(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in _convert_for_dynamo(item).items()}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message", str(error))
    return str(error)


class DynamoStore:
    """
    All persistence for users, expenses and savings goals. Every expense and
    goal key starts with the owner's ``user_id``, so a lookup with somebody
    else's id simply misses.
    """

    def __init__(
        self,
        region: str,
        users_table: str,
        expenses_table: str,
        goals_table: str,
        endpoint_url: Optional[str] = None,
        goal_update_max_retries: int = 5,
    ):
        self._dynamodb = boto3.resource("dynamodb", region_name=region, endpoint_url=endpoint_url)
        self.users_table = self._dynamodb.Table(users_table)
        self.expenses_table = self._dynamodb.Table(expenses_table)
        self.goals_table = self._dynamodb.Table(goals_table)
        self._goal_update_max_retries = goal_update_max_retries

    @classmethod
    def from_settings(cls, settings: Settings) -> "DynamoStore":
        return cls(
            region=settings.DYNAMO_REGION,
            users_table=settings.DYNAMO_USERS_TABLE,
            expenses_table=settings.DYNAMO_EXPENSES_TABLE,
            goals_table=settings.DYNAMO_GOALS_TABLE,
            endpoint_url=settings.DYNAMO_ENDPOINT_URL,
            goal_update_max_retries=settings.GOAL_UPDATE_MAX_RETRIES,
        )

    @property
    def tables(self) -> Dict[str, Any]:
        return {
            "users": self.users_table,
            "expenses": self.expenses_table,
            "savings_goals": self.goals_table,
        }

    # Table management

    def _table_definitions(self) -> Dict[str, Dict[str, Any]]:
        return {
            self.users_table.name: {
                "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
                "AttributeDefinitions": [
                    {"AttributeName": "user_id", "AttributeType": "S"},
                    {"AttributeName": "email", "AttributeType": "S"},
                    {"AttributeName": "google_id", "AttributeType": "S"},
                ],
                "GlobalSecondaryIndexes": [
                    {
                        "IndexName": EMAIL_INDEX,
                        "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
                        "Projection": {"ProjectionType": "ALL"},
                    },
                    {
                        "IndexName": GOOGLE_ID_INDEX,
                        "KeySchema": [{"AttributeName": "google_id", "KeyType": "HASH"}],
                        "Projection": {"ProjectionType": "ALL"},
                    },
                ],
            },
            self.expenses_table.name: {
                "KeySchema": [
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": "expense_id", "KeyType": "RANGE"},
                ],
                "AttributeDefinitions": [
                    {"AttributeName": "user_id", "AttributeType": "S"},
                    {"AttributeName": "expense_id", "AttributeType": "S"},
                ],
            },
            self.goals_table.name: {
                "KeySchema": [
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": "goal_id", "KeyType": "RANGE"},
                ],
                "AttributeDefinitions": [
                    {"AttributeName": "user_id", "AttributeType": "S"},
                    {"AttributeName": "goal_id", "AttributeType": "S"},
                ],
            },
        }

    def ensure_tables(self) -> List[str]:
        """Create any missing table. Returns the names that were created."""
        client = self._dynamodb.meta.client
        existing = set(client.list_tables().get("TableNames", []))
        created = []
        for name, definition in self._table_definitions().items():
            if name in existing:
                continue
            logger.info(f"Creating DynamoDB table {name}")
            client.create_table(TableName=name, BillingMode="PAY_PER_REQUEST", **definition)
            client.get_waiter("table_exists").wait(TableName=name)
            created.append(name)
        return created

    def check_connection(self) -> None:
        """Raise UpstreamFailure unless every table is reachable."""
        client = self._dynamodb.meta.client
        for label, table in self.tables.items():
            try:
                client.describe_table(TableName=table.name)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"DynamoDB table {table.name} ({label}) unreachable: {_error_message(e)}")
                raise UpstreamFailure(f"DynamoDB table {table.name} is unreachable")

    def table_status(self) -> Dict[str, Dict[str, Any]]:
        client = self._dynamodb.meta.client
        status = {}
        for label, table in self.tables.items():
            try:
                description = client.describe_table(TableName=table.name)["Table"]
                status[label] = {"name": table.name, "status": "accessible", "state": description.get("TableStatus")}
            except (ClientError, BotoCoreError) as e:
                logger.error(f"DynamoDB check failed for {table.name}: {_error_message(e)}")
                status[label] = {"name": table.name, "status": "error", "error": _error_message(e)}
        return status

    def _fail(self, operation: str, error: Exception):
        logger.error(f"[dynamo] {operation} failed: {_error_message(error)}")
        raise UpstreamFailure()

    def _query_all(self, table, **kwargs) -> List[Dict[str, Any]]:
        items = []
        while True:
            response = table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    # Users

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        try:
            items = self._query_all(
                self.users_table,
                IndexName=EMAIL_INDEX,
                KeyConditionExpression=Key("email").eq(email),
            )
        except (ClientError, BotoCoreError) as e:
            self._fail("get_user_by_email", e)
        return _from_dynamo(items[0]) if items else None

    def get_user_by_google_id(self, google_id: str) -> Optional[Dict[str, Any]]:
        try:
            items = self._query_all(
                self.users_table,
                IndexName=GOOGLE_ID_INDEX,
                KeyConditionExpression=Key("google_id").eq(google_id),
            )
        except (ClientError, BotoCoreError) as e:
            self._fail("get_user_by_google_id", e)
        return _from_dynamo(items[0]) if items else None

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.users_table.get_item(Key={"user_id": user_id})
        except (ClientError, BotoCoreError) as e:
            self._fail("get_user_by_id", e)
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def create_user(self, user_item: Dict[str, Any]) -> bool:
        """
        Write a new user together with a claim item keyed ``email#<email>``.
        Both writes share one transaction, so of two concurrent sign-ups
        with the same email only one lands. Returns False when the email
        (or the user id) is already taken.
        """
        # optional attributes that are None must be absent, GSI keys cannot be null
        item = {k: v for k, v in user_item.items() if v is not None}
        claim = {"user_id": email_claim_key(item["email"]), "owner_id": item["user_id"]}
        condition = "attribute_not_exists(user_id)"
        try:
            self._dynamodb.meta.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.users_table.name,
                            "Item": _serialize(item),
                            "ConditionExpression": condition,
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.users_table.name,
                            "Item": _serialize(claim),
                            "ConditionExpression": condition,
                        }
                    },
                ]
            )
        except ClientError as e:
            if _error_code(e) == "TransactionCanceledException":
                logger.info(f"[dynamo] create_user rejected for {item['email']}: {_error_message(e)}")
                return False
            self._fail("create_user", e)
        except BotoCoreError as e:
            self._fail("create_user", e)
        return True

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update_item(
            self.users_table,
            {"user_id": user_id},
            "user_id",
            updates,
            "update_user",
        )

    # Expenses

    def put_expense(self, expense_item: Dict[str, Any]) -> None:
        try:
            self.expenses_table.put_item(Item=_convert_for_dynamo(expense_item))
        except (ClientError, BotoCoreError) as e:
            self._fail("put_expense", e)

    def list_expenses(self, user_id: str, date_range: Optional[DateRange] = None) -> List[Dict[str, Any]]:
        """All of a user's expenses, optionally bounded by calendar date, newest first."""
        kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}

        # ISO dates compare correctly as strings
        condition = None
        if date_range is not None and date_range.start is not None:
            condition = Attr("date").gte(date_range.start.isoformat())
        if date_range is not None and date_range.end is not None:
            upper = Attr("date").lte(date_range.end.isoformat())
            condition = upper if condition is None else condition & upper
        if condition is not None:
            kwargs["FilterExpression"] = condition

        try:
            items = self._query_all(self.expenses_table, **kwargs)
        except (ClientError, BotoCoreError) as e:
            self._fail("list_expenses", e)
        expenses = [_from_dynamo(item) for item in items]
        expenses.sort(key=lambda exp: (exp.get("date", ""), exp.get("created_at", "")), reverse=True)
        return expenses

    def update_expense(self, user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply partial updates to an existing expense. Returns the updated item,
        or None when the user owns no expense with that id.
        """
        return self._update_item(
            self.expenses_table,
            {"user_id": user_id, "expense_id": expense_id},
            "expense_id",
            updates,
            "update_expense",
        )

    def delete_expense(self, user_id: str, expense_id: str) -> bool:
        try:
            response = self.expenses_table.delete_item(
                Key={"user_id": user_id, "expense_id": expense_id},
                ReturnValues="ALL_OLD",
            )
        except (ClientError, BotoCoreError) as e:
            self._fail("delete_expense", e)
        return "Attributes" in response

    # Savings goals

    def put_goal(self, goal: SavingsGoal) -> None:
        try:
            self.goals_table.put_item(
                Item=_convert_for_dynamo(goal.model_dump(mode="json")),
                ConditionExpression=Attr("goal_id").not_exists(),
            )
        except (ClientError, BotoCoreError) as e:
            self._fail("put_goal", e)

    def get_goal(self, user_id: str, goal_id: str) -> Optional[SavingsGoal]:
        try:
            response = self.goals_table.get_item(
                Key={"user_id": user_id, "goal_id": goal_id},
                ConsistentRead=True,
            )
        except (ClientError, BotoCoreError) as e:
            self._fail("get_goal", e)
        item = response.get("Item")
        return SavingsGoal.model_validate(_from_dynamo(item)) if item else None

    def list_goals(self, user_id: str) -> List[SavingsGoal]:
        try:
            items = self._query_all(self.goals_table, KeyConditionExpression=Key("user_id").eq(user_id))
        except (ClientError, BotoCoreError) as e:
            self._fail("list_goals", e)
        goals = [SavingsGoal.model_validate(_from_dynamo(item)) for item in items]
        goals.sort(key=lambda goal: goal.created_at)
        return goals

    def delete_goal(self, user_id: str, goal_id: str) -> bool:
        # contributions are embedded, so they go with the item
        try:
            response = self.goals_table.delete_item(
                Key={"user_id": user_id, "goal_id": goal_id},
                ReturnValues="ALL_OLD",
            )
        except (ClientError, BotoCoreError) as e:
            self._fail("delete_goal", e)
        return "Attributes" in response

    def add_contribution(self, user_id: str, goal_id: str, contribution: Contribution) -> Optional[SavingsGoal]:
        """
        Append a ledger entry and grow current_amount in a single UpdateItem.
        The amount is applied with ADD, so concurrent contributions never
        overwrite each other.
        """
        try:
            response = self.goals_table.update_item(
                Key={"user_id": user_id, "goal_id": goal_id},
                UpdateExpression=(
                    "SET #contributions = list_append(if_not_exists(#contributions, :empty), :entry) "
                    "ADD #current :amount, #version :one"
                ),
                ConditionExpression="attribute_exists(goal_id)",
                ExpressionAttributeNames={
                    "#contributions": "contributions",
                    "#current": "current_amount",
                    "#version": "version",
                },
                ExpressionAttributeValues=_convert_for_dynamo(
                    {
                        ":empty": [],
                        ":entry": [contribution.model_dump(mode="json")],
                        ":amount": contribution.amount,
                        ":one": 1,
                    }
                ),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                return None
            self._fail("add_contribution", e)
        except BotoCoreError as e:
            self._fail("add_contribution", e)
        return SavingsGoal.model_validate(_from_dynamo(response["Attributes"]))

    def update_goal(
        self,
        user_id: str,
        goal_id: str,
        mutate: Callable[[SavingsGoal], SavingsGoal],
    ) -> Optional[SavingsGoal]:
        """
        Read, mutate in memory, then write back only if nobody else wrote in
        between (version check). Retries on conflict; None if the goal is gone.
        """
        for attempt in range(1, self._goal_update_max_retries + 1):
            current = self.get_goal(user_id, goal_id)
            if current is None:
                return None

            updated = mutate(current).model_copy(update={"version": current.version + 1})
            try:
                self.goals_table.put_item(
                    Item=_convert_for_dynamo(updated.model_dump(mode="json")),
                    ConditionExpression=Attr("version").eq(current.version),
                )
                return updated
            except ClientError as e:
                if _error_code(e) != "ConditionalCheckFailedException":
                    self._fail("update_goal", e)
                logger.info(f"Goal {goal_id} changed concurrently, retrying update (attempt {attempt})")
            except BotoCoreError as e:
                self._fail("update_goal", e)

        logger.error(f"Goal {goal_id} update gave up after {self._goal_update_max_retries} conflicts")
        raise UpstreamFailure("Savings goal is being modified concurrently, please retry")

    # Shared helpers

    def _update_item(
        self,
        table,
        key: Dict[str, Any],
        exists_attribute: str,
        updates: Dict[str, Any],
        operation: str,
    ) -> Optional[Dict[str, Any]]:
        if not updates:
            return None

        update_expression_parts = []
        remove_parts = []
        expression_attribute_values = {}
        expression_attribute_names = {}

        for idx, (name, value) in enumerate(updates.items()):
            placeholder = f"#f{idx}"
            expression_attribute_names[placeholder] = name
            if value is None:
                remove_parts.append(placeholder)
                continue
            value_placeholder = f":v{idx}"
            update_expression_parts.append(f"{placeholder} = {value_placeholder}")
            expression_attribute_values[value_placeholder] = value

        update_expression = ""
        if update_expression_parts:
            update_expression = "SET " + ", ".join(update_expression_parts)
        if remove_parts:
            update_expression += " REMOVE " + ", ".join(remove_parts)

        kwargs = {
            "Key": key,
            "UpdateExpression": update_expression.strip(),
            "ConditionExpression": f"attribute_exists({exists_attribute})",
            "ExpressionAttributeNames": expression_attribute_names,
            "ReturnValues": "ALL_NEW",
        }
        if expression_attribute_values:
            kwargs["ExpressionAttributeValues"] = _convert_for_dynamo(expression_attribute_values)

        try:
            response = table.update_item(**kwargs)
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                return None
            self._fail(operation, e)
        except BotoCoreError as e:
            self._fail(operation, e)
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
