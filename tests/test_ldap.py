from unittest.mock import MagicMock

import pytest
from ldap3.core.results import RESULT_INVALID_CREDENTIALS, RESULT_STRONGER_AUTH_REQUIRED

from certexport.lib.ldap import DirectoryUser, LDAPConnection, LDAPEntry, get_user_filter


def ldap_entry(attributes, raw_attributes=None):
    return LDAPEntry(
        type="searchResEntry",
        dn=attributes.get("distinguishedName", ""),
        attributes=attributes,
        raw_attributes=raw_attributes or {},
    )


@pytest.fixture
def connection():
    target = MagicMock(ldap_scheme="ldaps", ldap_port=None)
    connection = LDAPConnection(target)
    connection.configuration_path = "CN=Configuration,DC=corp,DC=local"
    return connection


def test_user_filter_matches_all_identifiers():
    assert get_user_filter("alice") == (
        "(&(objectCategory=person)(objectClass=user)"
        "(|(cn=alice)(sAMAccountName=alice)(userPrincipalName=alice)))"
    )


def test_user_filter_escapes_identifier():
    search_filter = get_user_filter("a*(b)")

    assert "a\\2a\\28b\\29" in search_filter
    assert "a*(b)" not in search_filter


def test_ldap_entry_accessors():
    entry = ldap_entry({"cn": "Alice", "userCertificate": []}, {"userCertificate": [b"\x30"]})

    assert entry.get("cn") == "Alice"
    assert entry.get("userCertificate") is None
    assert entry.get("missing", "default") == "default"
    assert entry.get_raw("userCertificate") == [b"\x30"]
    assert entry.get_raw("missing") is None


def test_directory_user_from_entry():
    entry = ldap_entry(
        {
            "cn": "Alice",
            "sAMAccountName": "alice",
            "userPrincipalName": "alice@corp.local",
            "distinguishedName": "CN=Alice,CN=Users,DC=corp,DC=local",
        },
        {"userCertificate": [b"first", b"second"]},
    )

    user = DirectoryUser.from_entry("Alice", entry)

    assert user.account_name == "alice"
    assert user.certificates == (b"first", b"second")


def test_directory_user_without_certificates():
    user = DirectoryUser.from_entry("Alice", ldap_entry({"cn": "Alice"}))

    assert user.certificates == ()
    assert user.sam_account_name == ""
    assert user.account_name == "Alice"


def test_get_certificate_user(connection, monkeypatch):
    search = MagicMock(
        return_value=[
            ldap_entry(
                {"cn": "Alice", "sAMAccountName": "alice"},
                {"userCertificate": [b"cert"]},
            )
        ]
    )
    monkeypatch.setattr(connection, "search", search)

    user = connection.get_certificate_user("alice@corp.local")

    assert user.identifier == "alice@corp.local"
    assert user.certificates == (b"cert",)
    assert "userPrincipalName=alice@corp.local" in search.call_args[0][0]
    assert "userCertificate" in search.call_args[1]["attributes"]


def test_get_certificate_user_not_found(connection, monkeypatch):
    monkeypatch.setattr(connection, "search", MagicMock(return_value=[]))

    assert connection.get_certificate_user("nobody") is None


def test_get_certificate_user_ambiguous(connection, monkeypatch):
    entries = [
        ldap_entry({"cn": "Smith", "distinguishedName": "CN=Smith,OU=A,DC=corp,DC=local"}),
        ldap_entry({"cn": "Smith", "distinguishedName": "CN=Smith,OU=B,DC=corp,DC=local"}),
    ]
    monkeypatch.setattr(connection, "search", MagicMock(return_value=entries))

    assert connection.get_certificate_user("Smith") is None


def test_get_template_names(connection, monkeypatch):
    def search(search_filter, attributes=None, search_base=None):
        if "msPKI-Enterprise-Oid" in search_filter:
            assert search_base.startswith("CN=OID,CN=Public Key Services")
            return [
                ldap_entry({"displayName": "Old Name", "msPKI-Cert-Template-OID": "1.2.3"}),
                ldap_entry({"displayName": "Policy", "msPKI-Cert-Template-OID": "1.2.4"}),
                ldap_entry({"name": "No OID"}),
            ]
        return [
            ldap_entry({"displayName": "Smartcard User", "msPKI-Cert-Template-OID": "1.2.3"}),
            ldap_entry({"name": "WebServer", "msPKI-Cert-Template-OID": "1.2.5"}),
        ]

    monkeypatch.setattr(connection, "search", search)

    assert connection.get_template_names() == {
        "1.2.3": "Smartcard User",
        "1.2.4": "Policy",
        "1.2.5": "WebServer",
    }


def test_search_requires_connection(connection):
    with pytest.raises(Exception, match="not established"):
        connection.search("(objectClass=user)")


def test_bind_failure_messages(connection):
    with pytest.raises(Exception, match="channel binding"):
        connection._check_ldap_result(
            {"result": RESULT_INVALID_CREDENTIALS, "message": "80090346: LdapErr"}
        )

    with pytest.raises(Exception, match="signing is required"):
        connection._check_ldap_result(
            {"result": RESULT_STRONGER_AUTH_REQUIRED, "message": "00002028: LdapErr"}
        )

    with pytest.raises(Exception, match="LDAP bind failed"):
        connection._check_ldap_result(
            {
                "result": RESULT_INVALID_CREDENTIALS,
                "description": "invalidCredentials",
                "message": "8009030C: LdapErr: DSID-0C0906B5, comment: AcceptSecurityContext error, data 52e",
            }
        )
