"""Schema v1 - Initial database schema.

Every collection is a table of JSON documents keyed by a 24-character hex id.
Document fields that must be unique across a collection are enforced by
partial expression indexes; empty strings are exempt.

This version includes tables for:
- Orders placed against offers
- Offers published by liquidity providers
- Supported blockchains
- Liquidity provider wallets
"""


def _collection(name, indexes):
    return {
        'name': name,
        'columns': [
            {'name': 'id', 'type': 'TEXT', 'primary_key': True},
            {'name': 'doc', 'type': 'JSONB', 'nullable': False},
            {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
            {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
        ],
        'indexes': indexes
    }


def _unique_field(field, index_name):
    return {
        'name': index_name,
        'columns': [f"(doc->>'{field}')"],
        'unique': True,
        'where': f"doc->>'{field}' <> ''",
        'field': field
    }


def _field(field, index_name):
    return {'name': index_name, 'columns': [f"(doc->>'{field}')"]}


schema = {
    'version': 1,
    'tables': [
        _collection('orders', [
            _unique_field('orderId', 'idx_orders_order_id'),
            _field('userId', 'idx_orders_user'),
            _field('offerId', 'idx_orders_offer'),
            _field('hash', 'idx_orders_hash')
        ]),
        _collection('offers', [
            _unique_field('offerId', 'idx_offers_offer_id'),
            _field('userId', 'idx_offers_user'),
            _field('hash', 'idx_offers_hash'),
            _field('chainId', 'idx_offers_chain')
        ]),
        _collection('blockchains', [
            _unique_field('caipId', 'idx_blockchains_caip_id'),
            _field('chainId', 'idx_blockchains_chain')
        ]),
        _collection('liquidity_wallets', [
            _field('userId', 'idx_liquidity_wallets_user'),
            _field('chainId', 'idx_liquidity_wallets_chain')
        ])
    ]
}
