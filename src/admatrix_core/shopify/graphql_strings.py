"""Canonical GraphQL query strings for the Shopify Admin API."""

# Passed as $first / $lineItemsFirst to the order queries
ORDERS_PAGE_SIZE = 100
LINE_ITEMS_PAGE_SIZE = 100

# Daily order totals
QUERY_ORDERS_SUMMARY = """
query OrdersSummary(
  $first: Int!
  $lineItemsFirst: Int!
  $cursor: String
  $queryString: String
) {
  orders(first: $first, after: $cursor, query: $queryString) {
    edges {
      cursor
      node {
        id
        createdAt
        totalPriceSet { shopMoney { amount } }
        lineItems(first: $lineItemsFirst) {
          edges {
            node {
              quantity
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
    }
  }
}
"""

# Product sales with display metadata
QUERY_ORDERS_WITH_PRODUCTS = """
query OrdersWithProducts(
  $first: Int!
  $lineItemsFirst: Int!
  $cursor: String
  $queryString: String
) {
  orders(first: $first, after: $cursor, query: $queryString) {
    edges {
      cursor
      node {
        id
        createdAt
        totalPriceSet { shopMoney { amount } }
        lineItems(first: $lineItemsFirst) {
          edges {
            node {
              name
              quantity
              product {
                id
                title
                handle
                onlineStoreUrl
                featuredImage { url }
              }
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
    }
  }
}
"""

# Landing page traffic report
QUERY_SHOPIFYQL = """
query ShopifyQL($query: String!) {
  shopifyqlQuery(query: $query) {
    __typename
    ... on TableResponse {
      tableData {
        rowData
        columns { name dataType }
      }
    }
    parseErrors { code message }
  }
}
"""

SHOPIFYQL_TRAFFIC_TEMPLATE = (
    "FROM sessions "
    "SHOW online_store_visitors, sessions, sessions_with_cart_additions, "
    "sessions_that_reached_checkout "
    "GROUP BY landing_page_type, landing_page_path "
    "SINCE {since} UNTIL {until} "
    "ORDER BY sessions DESC "
    "LIMIT {limit}"
)
