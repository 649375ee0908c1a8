"""
=============================================================================
DYNAMODB SERVICE - Per-user data store on Amazon DynamoDB
=============================================================================
Stores one JSON document per key. The bill estimator keeps everything a
user owns (appliances, bill settings, saved bills) in a single document,
so the table is a plain key-value store.

Table Schema:
-------------
Table: PowerPredictUsers
- user_key (String) - Partition Key - e.g. "powerpredict_user_ana@example.com"
- payload (String) - The JSON document
- updated_at (String) - When the document was last written

Example Item:
{
    "user_key": "powerpredict_user_ana@example.com",
    "payload": "{\"appliances\": [], \"billSettings\": {...}, \"savedBills\": []}",
    "updated_at": "2025-11-28T10:30:00"
}

Environment:
- DYNAMODB_TABLE_NAME (default PowerPredictUsers)
- AWS_REGION, AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_SESSION_TOKEN
=============================================================================
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

# boto3 - AWS SDK for Python
import boto3

# ClientError - Exception class for AWS API errors
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

KEY_ATTRIBUTE = "user_key"
VALUE_ATTRIBUTE = "payload"


class DynamoDBService:
    """
    Key-value backend for the user store, backed by a DynamoDB table.

    Usage:
        db = DynamoDBService()
        db.create_table_if_not_exists()
        db.set("powerpredict_user_ana@example.com", '{"appliances": []}')
        db.get("powerpredict_user_ana@example.com")

    get/set/delete raise ClientError on AWS failures; the user store
    decides how to report them.
    """

    def __init__(self, table_name: str = None, dynamodb=None, client=None):
        """
        Args:
            table_name: Optional custom table name. If not provided,
                       uses DYNAMODB_TABLE_NAME from environment or default.
            dynamodb: Optional boto3 DynamoDB resource (created from env if omitted)
            client: Optional boto3 DynamoDB client (created from env if omitted)
        """
        self.table_name = table_name or os.getenv('DYNAMODB_TABLE_NAME', 'PowerPredictUsers')
        self.region = os.getenv('AWS_REGION', 'us-east-1')

        # Session token is only set for temporary credentials
        session_token = os.getenv('AWS_SESSION_TOKEN')
        credentials = dict(
            region_name=self.region,
            aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
            aws_session_token=session_token if session_token else None,
        )

        # Resource for Table objects, client for describe_table
        self.dynamodb = dynamodb if dynamodb is not None else boto3.resource('dynamodb', **credentials)
        self.client = client if client is not None else boto3.client('dynamodb', **credentials)

        # Table object - will be set when table is accessed
        self.table = None

    def _table(self):
        if not self.table:
            self.table = self.dynamodb.Table(self.table_name)
        return self.table

    def create_table_if_not_exists(self) -> bool:
        """
        Create the table if it doesn't exist (on-demand billing).

        Returns:
            bool: True if table exists or was created successfully
        """
        try:
            self.client.describe_table(TableName=self.table_name)
            self.table = self.dynamodb.Table(self.table_name)
            logger.info("DynamoDB table '%s' exists", self.table_name)
            return True

        except ClientError as e:
            if e.response['Error']['Code'] != 'ResourceNotFoundException':
                logger.error("Error checking table: %s", e)
                return False

        try:
            table = self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {'AttributeName': KEY_ATTRIBUTE, 'KeyType': 'HASH'},
                ],
                AttributeDefinitions=[
                    {'AttributeName': KEY_ATTRIBUTE, 'AttributeType': 'S'},
                ],
                BillingMode='PAY_PER_REQUEST'
            )
            # Wait for table to be fully created
            table.wait_until_exists()
            self.table = table
            logger.info("Created DynamoDB table '%s'", self.table_name)
            return True

        except ClientError as create_error:
            logger.error("Failed to create table: %s", create_error)
            return False

    def get(self, key: str) -> Optional[str]:
        """Return the stored document for key, or None if there is none."""
        response = self._table().get_item(Key={KEY_ATTRIBUTE: key})
        item = response.get('Item')
        if not item:
            return None
        return item[VALUE_ATTRIBUTE]

    def set(self, key: str, value: str) -> None:
        self._table().put_item(
            Item={
                KEY_ATTRIBUTE: key,
                VALUE_ATTRIBUTE: value,
                'updated_at': datetime.now(timezone.utc).isoformat()
            }
        )

    def delete(self, key: str) -> None:
        self._table().delete_item(Key={KEY_ATTRIBUTE: key})
