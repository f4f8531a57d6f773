import logging
import typing as t

import psycopg2
import psycopg2.extras

logger = logging.getLogger(__name__)

# register uuid
psycopg2.extras.register_uuid()


class DAO:
    def __init__(self, db_params: dict):
        self.__connection = None
        try:
            self.__connection = psycopg2.connect(**db_params)
        except psycopg2.OperationalError as ex:
            logger.error(f"Unable to connect to database {db_params.get('host')}:{db_params.get('port')}. {ex}")
            raise

    def execute(self, sql: str, parameters: tuple) -> int:
        cursor = self.__connection.cursor()
        try:
            cursor.execute(sql, parameters)
            self.__connection.commit()

            return cursor.rowcount
        except psycopg2.Error:
            self.__connection.rollback()
            raise
        finally:
            cursor.close()

    def fetch_all(self, sql: str, parameters: tuple = ()) -> list:
        cursor = self.__connection.cursor()
        try:
            cursor.execute(sql, parameters)
            rows = cursor.fetchall()
            self.__connection.commit()

            return rows
        except psycopg2.Error:
            self.__connection.rollback()
            raise
        finally:
            cursor.close()

    def fetch_one(self, sql: str, parameters: tuple = ()) -> t.Optional[tuple]:
        rows = self.fetch_all(sql, parameters)
        return rows[0] if rows else None

    def close(self) -> None:
        if self.__connection:
            self.__connection.close()
            self.__connection = None

    def __del__(self):
        self.close()
