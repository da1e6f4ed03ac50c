# Overview: Fixed user roles and the location level each one is scoped to.

ROLE_BRANCH_USER = "branch_user"
ROLE_SUBDISTRICT_ADMIN = "subdistrict_admin"
ROLE_CITY_ADMIN = "city_admin"
ROLE_SUPER_ADMIN = "super_admin"

VALID_ROLES = {
    ROLE_BRANCH_USER,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_CITY_ADMIN,
    ROLE_SUPER_ADMIN,
}

# Which location column carries each role's assignment
ROLE_ASSIGNMENT_LEVEL = {
    ROLE_BRANCH_USER: "branch",
    ROLE_SUBDISTRICT_ADMIN: "subdistrict",
    ROLE_CITY_ADMIN: "city",
    ROLE_SUPER_ADMIN: None,
}
