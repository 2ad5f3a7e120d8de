import threading
import unittest

from lupasig.exceptions import ConfigurationError, EncodingError
from lupasig.keys import CredentialScope, SigningKeyCache, derive_signing_key

SECRET_KEY = 'wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY'


class TestDeriveSigningKey(unittest.TestCase):
    def test_published_example(self) -> None:
        # https://docs.aws.amazon.com/general/latest/gr/signature-v4-examples.html
        key = derive_signing_key(SECRET_KEY, CredentialScope('20120215', 'us-east-1', 'iam'))

        self.assertEqual(key.hex(), 'f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d')

    def test_each_scope_part_matters(self) -> None:
        base = derive_signing_key(SECRET_KEY, CredentialScope('20120215', 'us-east-1', 'iam'))
        for scope in [
            CredentialScope('20120216', 'us-east-1', 'iam'),
            CredentialScope('20120215', 'eu-west-1', 'iam'),
            CredentialScope('20120215', 'us-east-1', 's3'),
        ]:
            with self.subTest(scope=str(scope)):
                self.assertNotEqual(derive_signing_key(SECRET_KEY, scope), base)


class TestCredentialScope(unittest.TestCase):
    def test_render(self) -> None:
        self.assertEqual(str(CredentialScope('20130524', 'us-east-1', 's3')), '20130524/us-east-1/s3/aws4_request')

    def test_parse_round_trip(self) -> None:
        for date_stamp, region, service in [
            ('20130524', 'us-east-1', 's3'),
            ('20241231', 'eu-central-1', 'rekognition'),
        ]:
            with self.subTest(region=region, service=service):
                scope = CredentialScope.parse(str(CredentialScope(date_stamp, region, service)))
                self.assertEqual((scope.date_stamp, scope.region, scope.service), (date_stamp, region, service))

    def test_parse_rejects_malformed(self) -> None:
        for value in ['', '20130524/us-east-1/s3', '20130524/us-east-1/s3/aws5_request', '2013/us-east-1/s3/aws4_request']:
            with self.subTest(value=value):
                with self.assertRaises(EncodingError):
                    CredentialScope.parse(value)

    def test_validation(self) -> None:
        with self.assertRaises(ConfigurationError):
            CredentialScope('20130524', '', 's3')
        with self.assertRaises(ConfigurationError):
            CredentialScope('20130524', 'us-east-1', '')
        with self.assertRaises(ConfigurationError):
            CredentialScope('2013-05-24', 'us-east-1', 's3')

    def test_trailing_newline_is_rejected(self) -> None:
        for args in [
            ('20130524\n', 'us-east-1', 's3'),
            ('20130524', 'us-east-1\n', 's3'),
            ('20130524', 'us-east-1', 's3\n'),
        ]:
            with self.subTest(args=args):
                with self.assertRaises(ConfigurationError):
                    CredentialScope(*args)

    def test_non_ascii_digits_are_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            CredentialScope('\uff12\uff10\uff11\uff13\uff10\uff15\uff12\uff14', 'us-east-1', 's3')


class TestSigningKeyCache(unittest.TestCase):
    def test_reuses_key_within_day(self) -> None:
        cache = SigningKeyCache()
        scope = CredentialScope('20130524', 'us-east-1', 's3')

        first = cache.get(SECRET_KEY, scope)
        second = cache.get(SECRET_KEY, scope)

        self.assertIs(first, second)
        self.assertEqual(first, derive_signing_key(SECRET_KEY, scope))
        self.assertEqual(len(cache), 1)

    def test_day_rollover_drops_old_keys(self) -> None:
        cache = SigningKeyCache()
        cache.get(SECRET_KEY, CredentialScope('20130524', 'us-east-1', 's3'))
        cache.get(SECRET_KEY, CredentialScope('20130524', 'us-east-1', 'rekognition'))
        self.assertEqual(len(cache), 2)

        tomorrow = CredentialScope('20130525', 'us-east-1', 's3')
        self.assertEqual(cache.get(SECRET_KEY, tomorrow), derive_signing_key(SECRET_KEY, tomorrow))
        self.assertEqual(len(cache), 1)

    def test_previous_day_is_derived_but_not_cached(self) -> None:
        cache = SigningKeyCache()
        cache.get(SECRET_KEY, CredentialScope('20130525', 'us-east-1', 's3'))
        yesterday = CredentialScope('20130524', 'us-east-1', 's3')

        self.assertEqual(cache.get(SECRET_KEY, yesterday), derive_signing_key(SECRET_KEY, yesterday))
        self.assertEqual(len(cache), 1)

    def test_concurrent_use(self) -> None:
        cache = SigningKeyCache()
        scope = CredentialScope('20130524', 'us-east-1', 's3')
        results = []

        def worker() -> None:
            for _ in range(50):
                results.append(cache.get(SECRET_KEY, scope))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), 400)
        self.assertEqual(set(results), {derive_signing_key(SECRET_KEY, scope)})


if __name__ == '__main__':
    unittest.main(verbosity=2)
