"""
Argument templates for the NSSM command line.
"""
from typing import List, Tuple
from ..MODELS.service_descriptor import ServiceDescriptor

Command = Tuple[str, ...]


class NssmCommands:
    """
    Builds the argument lists NSSM expects for each lifecycle operation.
    The manager path itself is not part of the returned tuples.
    """

    @staticmethod
    def install(svc: ServiceDescriptor) -> List[Command]:
        """
        The install call followed by one ``set`` call per configured parameter.

        :param svc: The service to install.
        :return: Commands to run in order.
        """
        commands: List[Command] = [("install", svc.name, svc.executable_path, *svc.arguments)]

        app_dir = svc.effective_working_directory
        if app_dir:
            commands.append(NssmCommands.set(svc.name, "AppDirectory", app_dir))
        if svc.display_name:
            commands.append(NssmCommands.set(svc.name, "DisplayName", svc.display_name))
        if svc.description:
            commands.append(NssmCommands.set(svc.name, "Description", svc.description))
        commands.append(NssmCommands.set(svc.name, "Start", svc.startup_mode.nssm_value))
        if svc.dependencies:
            commands.append(NssmCommands.set(svc.name, "DependOnService", *svc.dependencies))
        if svc.account:
            # nssm needs the password argument even when it is empty
            commands.append(NssmCommands.set(svc.name, "ObjectName", svc.account.user,
                                             svc.account.password))
        return commands

    @staticmethod
    def set(name: str, parameter: str, *values: str) -> Command:
        return ("set", name, parameter, *values)

    @staticmethod
    def start(name: str) -> Command:
        return ("start", name)

    @staticmethod
    def stop(name: str) -> Command:
        return ("stop", name)

    @staticmethod
    def remove(name: str) -> Command:
        return ("remove", name, "confirm")

    @staticmethod
    def status(name: str) -> Command:
        return ("status", name)

    @staticmethod
    def redact(command: Command) -> Command:
        """
        Masks the account password of an ``ObjectName`` call for display.
        """
        if len(command) >= 5 and command[0] == "set" and command[2] == "ObjectName":
            return command[:4] + ("********",) + command[5:]
        return command
