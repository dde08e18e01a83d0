"""
GraphQL Query Definitions — Queries used against the GitHub GraphQL API.

Member page queries (used by MemberFetcher):
  BASIC_MEMBERS_QUERY   Enterprise members with the public profile fields of
                        the linked user account (company, location, website,
                        twitter) and up to 50 organization memberships.
  FULL_MEMBERS_QUERY    Enterprise members with core profile fields and
                        organization memberships; 2FA and SAML data are
                        fetched separately per member.

  Both take $enterpriseSlug, $cursor (null for the first page) and
  $batchSize (1..100) and return:
      enterprise.members.totalCount
      enterprise.members.pageInfo { hasNextPage endCursor }
      enterprise.members.nodes[]  (EnterpriseUserAccount)

Detail query (used by MemberEnricher):
  ORGANIZATION_MEMBER_DETAILS_QUERY
                        hasTwoFactorEnabled and SAML nameId for one login
                        within one organization. Requires org owner access.

Preflight queries (used by PreflightChecker):
  VIEWER_QUERY, ENTERPRISE_ACCESS_QUERY, MEMBER_SAMPLE_QUERY,
  RATE_LIMIT_QUERY, FIRST_MEMBER_ORGANIZATION_QUERY

Required token scopes: read:enterprise, read:org, read:user.
"""

BASIC_MEMBERS_QUERY = """
query EnterpriseMembersBasic($enterpriseSlug: String!, $cursor: String, $batchSize: Int!) {
  enterprise(slug: $enterpriseSlug) {
    name
    description
    members(first: $batchSize, after: $cursor) {
      totalCount
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        ... on EnterpriseUserAccount {
          login
          name
          createdAt
          updatedAt
          user {
            login
            name
            email
            createdAt
            updatedAt
            isSiteAdmin
            company
            location
            websiteUrl
            twitterUsername
          }
          organizations(first: 50) {
            totalCount
            edges {
              role
              node {
                login
                name
              }
            }
          }
        }
      }
    }
  }
}
"""

FULL_MEMBERS_QUERY = """
query EnterpriseMembersFull($enterpriseSlug: String!, $cursor: String, $batchSize: Int!) {
  enterprise(slug: $enterpriseSlug) {
    name
    description
    members(first: $batchSize, after: $cursor) {
      totalCount
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        ... on EnterpriseUserAccount {
          login
          name
          createdAt
          updatedAt
          user {
            login
            name
            email
            createdAt
            updatedAt
            isSiteAdmin
          }
          organizations(first: 50) {
            totalCount
            edges {
              role
              node {
                login
                name
              }
            }
          }
        }
      }
    }
  }
}
"""

ORGANIZATION_MEMBER_DETAILS_QUERY = """
query OrganizationMemberDetails($login: String!, $orgLogin: String!) {
  organization(login: $orgLogin) {
    login
    membersWithRole(query: $login, first: 1) {
      edges {
        hasTwoFactorEnabled
        node {
          login
        }
      }
    }
    samlIdentityProvider {
      externalIdentities(login: $login, first: 1) {
        nodes {
          samlIdentity {
            nameId
          }
        }
      }
    }
  }
}
"""

VIEWER_QUERY = """
query Viewer {
  viewer {
    login
    name
  }
}
"""

ENTERPRISE_ACCESS_QUERY = """
query EnterpriseAccess($enterpriseSlug: String!) {
  enterprise(slug: $enterpriseSlug) {
    name
    description
    slug
    members {
      totalCount
    }
  }
}
"""

MEMBER_SAMPLE_QUERY = """
query EnterpriseMemberSample($enterpriseSlug: String!) {
  enterprise(slug: $enterpriseSlug) {
    members(first: 3) {
      nodes {
        ... on EnterpriseUserAccount {
          login
          name
          createdAt
          user {
            login
            name
            email
            company
            location
          }
          organizations(first: 5) {
            totalCount
            edges {
              role
              node {
                login
                name
              }
            }
          }
        }
      }
    }
  }
}
"""

RATE_LIMIT_QUERY = """
query RateLimit {
  rateLimit {
    limit
    remaining
    resetAt
  }
}
"""

FIRST_MEMBER_ORGANIZATION_QUERY = """
query FirstMemberOrganization($enterpriseSlug: String!) {
  enterprise(slug: $enterpriseSlug) {
    members(first: 1) {
      nodes {
        ... on EnterpriseUserAccount {
          login
          organizations(first: 1) {
            edges {
              node {
                login
              }
            }
          }
        }
      }
    }
  }
}
"""
