"""Sample simulation files shared by the test modules."""

import os


def message_xml(msg_id, name="Unit", extra=""):
    return (
        '    <message v="1.0">\n'
        '      <_type>position_report</_type>\n'
        '      <_action>update</_action>\n'
        f'      <_id>{msg_id}</_id>\n'
        f'      <uniquedesignation>{name}</uniquedesignation>\n'
        '      <sic>SFGPEWRR--MT</sic>\n'
        '      <datetimevalidity>2013-02-01 10:00:00</datetimevalidity>\n'
        f'{extra}'
        '    </message>\n'
    )


def simulation_xml(count, extra=""):
    body = "".join(message_xml(f"id-{i}", f"Unit {i}", extra) for i in range(1, count + 1))
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<simulation>\n'
        '  <messages>\n'
        f'{body}'
        '  </messages>\n'
        '</simulation>\n'
    )


def write(directory, name, text):
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


def write_simulation(directory, count, name="simulation.xml"):
    return write(directory, name, simulation_xml(count))
