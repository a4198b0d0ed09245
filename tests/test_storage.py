"""
Tests for the repository implementations and record round-trips of the models.
"""
from datetime import date
from decimal import Decimal

import pytest

from tilequote.core.database import database_url, make_session_factory
from tilequote.core.models import (
    BusinessProfile, Collection, Quotation, QuotationLineItem, TileProduct
)
from tilequote.core.storage import InMemoryRepository, SqlRepository


@pytest.fixture
def sql_repository(tmp_path):
    return SqlRepository(make_session_factory(database_url(tmp_path / "test.db")))


class TestInMemoryRepository:

    def test_missing_collection_is_empty(self, repository):
        assert repository.load(Collection.CUSTOMERS) == []

    def test_save_and_load(self, repository):
        repository.save(Collection.STAFF, [{'id': '1', 'name': 'Rohit'}])
        assert repository.load(Collection.STAFF) == [{'id': '1', 'name': 'Rohit'}]

    def test_records_are_copied(self, repository):
        records = [{'id': '1', 'name': 'Rohit'}]
        repository.save(Collection.STAFF, records)
        records[0]['name'] = 'changed'
        loaded = repository.load(Collection.STAFF)
        loaded[0]['name'] = 'changed again'
        assert repository.load(Collection.STAFF)[0]['name'] == 'Rohit'

    def test_initial_data(self):
        repository = InMemoryRepository({Collection.CUSTOMERS: [{'id': 'c'}]})
        assert repository.load(Collection.CUSTOMERS) == [{'id': 'c'}]


class TestSqlRepository:

    def test_missing_collection_is_empty(self, sql_repository):
        assert sql_repository.load(Collection.QUOTATIONS) == []

    def test_save_replaces_collection(self, sql_repository):
        sql_repository.save(Collection.CUSTOMERS, [{'id': '1', 'name': 'Anil'}])
        sql_repository.save(Collection.CUSTOMERS, [{'id': '2', 'name': 'Sunita'}])
        assert sql_repository.load(Collection.CUSTOMERS) == [{'id': '2', 'name': 'Sunita'}]

    def test_unicode_survives(self, sql_repository):
        sql_repository.save(Collection.STAFF, [{'name': 'राहुल'}])
        assert sql_repository.load(Collection.STAFF) == [{'name': 'राहुल'}]

    def test_persists_across_instances(self, tmp_path):
        url = database_url(tmp_path / "shared.db")
        SqlRepository(make_session_factory(url)).save(Collection.TILES, [{'id': 't'}])
        assert SqlRepository(make_session_factory(url)).load(Collection.TILES) == [{'id': 't'}]

    def test_collection_names(self, sql_repository):
        sql_repository.save(Collection.STAFF, [])
        sql_repository.save(Collection.CUSTOMERS, [])
        assert sql_repository.collection_names() == ['customers', 'staff']


class TestRecords:

    def test_tile_uses_camel_case_keys(self, tile):
        record = tile.to_record()
        assert record['shadeName'] == "Statuario Bianco"
        assert record['discountedPrice'] == "900"
        assert record['noOfBoxes'] == 34
        assert TileProduct.from_record(record) == tile

    def test_numeric_strings_from_browser(self):
        tile = TileProduct.from_record({'id': 1, 'mrp': 1850, 'noOfBoxes': '4', 'discount': None})
        assert tile.id == "1"
        assert tile.mrp == Decimal('1850')
        assert tile.no_of_boxes == 4
        assert tile.discount == Decimal('0')

    def test_quotation_round_trip(self, make_quotation, sql_repository):
        quotation = make_quotation()
        sql_repository.save(Collection.QUOTATIONS, [quotation.to_record()])
        loaded = Quotation.from_record(sql_repository.load(Collection.QUOTATIONS)[0])
        assert loaded.quotation_number == quotation.quotation_number
        assert loaded.items == quotation.items
        assert loaded.grand_total == Decimal('849.6')
        assert loaded.created_at == quotation.created_at

    def test_quotation_record_keys(self, make_quotation):
        record = make_quotation().to_record()
        assert record['customerName'] == "Anil Mehta"
        assert record['staffName'] == "Rohit Sharma"
        assert Decimal(record['grandTotal']) == Decimal('849.6')
        assert record['quotationDate'] == "2024-01-01"

    def test_browser_quotation_record(self):
        record = {
            'id': 1704100000000,
            'quotationNumber': 'PTM-240101-007',
            'quotationDate': '2024-01-01T00:00:00.000Z',
            'validityDays': '10',
            'customerName': 'Anil Mehta',
            'products': [
                {'id': 5, 'productId': 2, 'brand': 'Jaquar', 'productCode': 'ALD-1',
                 'description': 'Basin mixer', 'quantity': 2, 'price': '450', 'discount': 0},
            ],
            'taxRate': 18,
            'createdAt': '2024-01-01T10:00:00.000Z',
        }
        quotation = Quotation.from_record(record)
        assert quotation.id == "1704100000000"
        assert quotation.issue_date == date(2024, 1, 1)
        assert quotation.expiry_date == date(2024, 1, 11)
        assert quotation.items[0].product.product_code == 'ALD-1'
        assert quotation.items[0].product.id == '2'
        assert quotation.subtotal == Decimal('900')
        assert quotation.company.business_name == BusinessProfile().business_name

    def test_line_item_category_tag(self, adhesive):
        record = QuotationLineItem(id="l", product=adhesive, quantity=Decimal('2')).to_record()
        assert record['productCategory'] == 'adhesive'
        assert QuotationLineItem.from_record(record).product == adhesive
