from botocore.exceptions import ClientError

from backend.lib.dynamodb_service import DynamoDBService
from backend.lib.user_store import UserStore

from conftest import make_household


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


class FakeTable:
    def __init__(self):
        self.items = {}
        self.waited = False

    def get_item(self, Key):
        item = self.items.get(Key["user_key"])
        return {"Item": item} if item else {}

    def put_item(self, Item):
        self.items[Item["user_key"]] = Item

    def delete_item(self, Key):
        self.items.pop(Key["user_key"], None)

    def wait_until_exists(self):
        self.waited = True


class FakeResource:
    def __init__(self):
        self.table = FakeTable()
        self.created = None

    def Table(self, name):
        return self.table

    def create_table(self, **kwargs):
        self.created = kwargs
        return self.table


class FakeClient:
    def __init__(self, error=None):
        self.error = error

    def describe_table(self, TableName):
        if self.error:
            raise self.error
        return {"Table": {"TableName": TableName}}


def make_service(client_err=None):
    resource = FakeResource()
    service = DynamoDBService("TestUsers", dynamodb=resource, client=FakeClient(client_err))
    return service, resource


def test_existing_table_is_used():
    service, resource = make_service()
    assert service.create_table_if_not_exists()
    assert resource.created is None
    assert service.table is resource.table


def test_missing_table_is_created():
    service, resource = make_service(client_error("ResourceNotFoundException"))
    assert service.create_table_if_not_exists()
    assert resource.created["TableName"] == "TestUsers"
    assert resource.created["KeySchema"] == [{"AttributeName": "user_key", "KeyType": "HASH"}]
    assert resource.table.waited


def test_other_describe_errors_fail():
    service, _ = make_service(client_error("AccessDeniedException"))
    assert service.create_table_if_not_exists() is False


def test_get_set_delete():
    service, resource = make_service()
    assert service.get("k") is None
    service.set("k", '{"a": 1}')
    assert service.get("k") == '{"a": 1}'
    assert "updated_at" in resource.table.items["k"]
    service.delete("k")
    assert service.get("k") is None


def test_user_store_on_dynamodb():
    service, _ = make_service()
    store = UserStore(service)
    assert store.save_appliances("ana@example.com", make_household())
    assert store.get_user_data("ana@example.com").appliances == make_household()


def test_aws_errors_become_store_failures():
    service, resource = make_service()

    def boom(**kwargs):
        raise client_error("ProvisionedThroughputExceededException")

    resource.table.put_item = boom
    resource.table.get_item = boom
    store = UserStore(service)
    assert store.save_appliances("ana@example.com", make_household()) is False
    assert store.get_user_data("ana@example.com") is None
