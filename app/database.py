from functools import lru_cache
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings


def _error_result(e: Exception) -> Dict[str, Any]:
    """Shape a boto error the same way for every call"""
    if isinstance(e, ClientError):
        return {
            "status": "error",
            "error": str(e),
            "code": e.response.get("Error", {}).get("Code", ""),
            "cancellation_reasons": e.response.get("CancellationReasons", []),
        }
    return {
        "status": "error",
        "error": str(e),
        "code": type(e).__name__,
        "cancellation_reasons": [],
    }


class DynamoDBClient:
    def __init__(self, table_name: Optional[str] = None, region_name: Optional[str] = None,
                 endpoint_url: Optional[str] = None):
        self.aws_region = region_name or settings.aws_region
        self.table_name = table_name or settings.events_table_name
        self.endpoint_url = endpoint_url or settings.dynamodb_endpoint_url

        # Credentials come from the standard AWS chain (env vars, profile, role)
        self.dynamodb = boto3.client(
            'dynamodb',
            region_name=self.aws_region,
            endpoint_url=self.endpoint_url
        )

        # Initialize DynamoDB resource for easier operations
        self.dynamodb_resource = boto3.resource(
            'dynamodb',
            region_name=self.aws_region,
            endpoint_url=self.endpoint_url
        )

        if self.table_name:
            self.table = self.dynamodb_resource.Table(self.table_name)
        else:
            self.table = None

    def test_connection(self) -> Dict[str, Any]:
        """Test DynamoDB connection and return table info"""
        if not self.table_name:
            return {
                "status": "error",
                "error": "Table name not configured in environment variables"
            }

        try:
            response = self.dynamodb.describe_table(TableName=self.table_name)
            return {
                "status": "connected",
                "table_name": self.table_name,
                "table_status": response['Table']['TableStatus'],
                "item_count": response['Table']['ItemCount']
            }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)

    def put_item(self, item: Dict[str, Any], condition_expression: Optional[str] = None) -> Dict[str, Any]:
        """Put item into DynamoDB table, optionally guarded by a condition"""
        try:
            kwargs = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression
            response = self.table.put_item(**kwargs)
            return {
                "status": "success",
                "response": response
            }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)

    def get_item(self, pk: str, sk: str, consistent_read: bool = True) -> Dict[str, Any]:
        """Get item from DynamoDB table"""
        try:
            response = self.table.get_item(
                Key={
                    'pk': pk,
                    'sk': sk
                },
                ConsistentRead=consistent_read
            )
            if 'Item' in response:
                return {
                    "status": "success",
                    "item": response['Item']
                }
            else:
                return {
                    "status": "not_found",
                    "item": None
                }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)

    def query_items(self, pk: str, sk_prefix: Optional[str] = None) -> Dict[str, Any]:
        """Query items by partition key, following pagination"""
        try:
            if sk_prefix:
                query_kwargs = {
                    "KeyConditionExpression": 'pk = :pk AND begins_with(sk, :sk)',
                    "ExpressionAttributeValues": {
                        ':pk': pk,
                        ':sk': sk_prefix
                    }
                }
            else:
                query_kwargs = {
                    "KeyConditionExpression": 'pk = :pk',
                    "ExpressionAttributeValues": {
                        ':pk': pk
                    }
                }
            query_kwargs["ConsistentRead"] = True

            items = []
            while True:
                response = self.table.query(**query_kwargs)
                items.extend(response['Items'])
                if 'LastEvaluatedKey' not in response:
                    break
                query_kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

            return {
                "status": "success",
                "items": items,
                "count": len(items)
            }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)

    def scan_items(self, filter_expression: Optional[str] = None,
                   expression_values: Optional[Dict[str, Any]] = None,
                   expression_names: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Scan all items in the table with optional filter, following pagination"""
        try:
            scan_kwargs = {}
            if filter_expression and expression_values:
                scan_kwargs['FilterExpression'] = filter_expression
                scan_kwargs['ExpressionAttributeValues'] = expression_values
                if expression_names:
                    scan_kwargs['ExpressionAttributeNames'] = expression_names

            items = []
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response['Items'])
                if 'LastEvaluatedKey' not in response:
                    break
                scan_kwargs['ExclusiveStartKey'] = response['LastEvaluatedKey']

            return {
                "status": "success",
                "items": items,
                "count": len(items)
            }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)

    def transact_write(self, transact_items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Execute a transactional write operation"""
        try:
            response = self.dynamodb.transact_write_items(
                TransactItems=transact_items
            )
            return {
                "status": "success",
                "response": response
            }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)

    def update_item_conditional(self, pk: str, sk: str, update_expression: str,
                                condition_expression: str, expression_values: Dict[str, Any],
                                expression_names: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Update item with conditional expression"""
        try:
            update_kwargs = {
                "Key": {'pk': pk, 'sk': sk},
                "UpdateExpression": update_expression,
                "ConditionExpression": condition_expression,
                "ExpressionAttributeValues": expression_values
            }
            if expression_names:
                update_kwargs["ExpressionAttributeNames"] = expression_names
            response = self.table.update_item(**update_kwargs)
            return {
                "status": "success",
                "response": response
            }
        except (ClientError, BotoCoreError) as e:
            return _error_result(e)


@lru_cache(maxsize=1)
def get_db_client() -> DynamoDBClient:
    """Shared client, built on first use so the memory backend never touches AWS"""
    return DynamoDBClient()
